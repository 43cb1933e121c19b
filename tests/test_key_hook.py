"""Tests for translating hook events into recorder events."""

from types import SimpleNamespace

from key_hook import KeyHookService, MouseHookService, translate_key


def special(name):
    return SimpleNamespace(name=name)


def code(char=None, vk=None):
    return SimpleNamespace(char=char, vk=vk)


class TestTranslateKey:
    def test_special_keys(self):
        assert translate_key(special("ctrl_l")) == "LeftCtrl"
        assert translate_key(special("shift_r")) == "RightShift"
        assert translate_key(special("backspace")) == "Back"
        assert translate_key(special("f12")) == "F12"
        assert translate_key(special("media_volume_up")) is None

    def test_characters(self):
        assert translate_key(code("a"), use_vk=False) == "A"
        assert translate_key(code("Z"), use_vk=False) == "Z"
        assert translate_key(code("!"), layout="us", use_vk=False) == "D1"
        assert translate_key(code("ä"), layout="de", use_vk=False) == "Oem7"
        assert translate_key(code("€"), use_vk=False) is None

    def test_virtual_key_codes(self):
        assert translate_key(code("\x03", 0x43), use_vk=True) == "C"
        assert translate_key(code(None, 0x62), use_vk=True) == "NumPad2"
        assert translate_key(code(None, 0xBD), use_vk=True) == "OemMinus"


class TestKeyHookService:
    def test_forwards_events_with_timestamps(self):
        events = []
        hook = KeyHookService(events.append, clock=lambda: 12.5)
        hook._on_press(special("shift"))
        hook._on_press(code("a", None))
        hook._on_release(special("shift"))
        hook._on_press(special("media_next"))
        assert [(e.key, e.down, e.timestamp) for e in events] == [
            ("LeftShift", True, 12.5), ("A", True, 12.5), ("LeftShift", False, 12.5)]
        assert not hook.is_running()


class TestMouseHookService:
    def make_hook(self, events):
        return MouseHookService(events.append, clock=lambda: 3.0, position=lambda x, y: (int(x), int(y)))

    def test_forwards_button_presses_only(self):
        events = []
        hook = self.make_hook(events)
        hook._on_click(10.6, 20.2, special("left"), True)
        hook._on_click(10.6, 20.2, special("left"), False)
        hook._on_click(1, 2, special("x1"), True)
        hook._on_click(30, 40, special("middle"), True)
        assert [(e.x, e.y, e.button, e.timestamp) for e in events] == [
            (10, 20, "left", 3.0), (30, 40, "middle", 3.0)]
        assert not hook.is_running()

    def test_scroll_in_wheel_units(self):
        events = []
        hook = self.make_hook(events)
        hook._on_scroll(5, 6, 0, 1)
        hook._on_scroll(5, 6, 0, -2)
        hook._on_scroll(5, 6, 3, 0)
        assert [e.wheel_delta for e in events] == [120, -240]
