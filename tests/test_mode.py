from mime_view.view.mode import ViewMode, ViewModeMachine


def test_first_mode_attaches_without_detaching(surface):
    machine = ViewModeMachine(surface, "text-widget", "image-widget")
    assert machine.current is ViewMode.NONE
    assert machine.set_mode(ViewMode.TEXT)
    assert surface.events == [("attach", "text-widget")]
    assert machine.current is ViewMode.TEXT


def test_switch_swaps_widgets(surface):
    machine = ViewModeMachine(surface, "text-widget", "image-widget")
    machine.set_mode(ViewMode.TEXT)
    machine.set_mode(ViewMode.IMAGE)
    assert surface.events[1:] == [("detach", "text-widget"), ("attach", "image-widget")]
    machine.set_mode(ViewMode.TEXT)
    assert surface.events[3:] == [("detach", "image-widget"), ("attach", "text-widget")]


def test_same_mode_is_a_no_op(surface):
    machine = ViewModeMachine(surface, "text-widget", "image-widget")
    machine.set_mode(ViewMode.TEXT)
    surface.events.clear()
    machine.set_mode(ViewMode.TEXT)
    assert surface.events == []


def test_unreachable_targets_are_rejected(surface):
    machine = ViewModeMachine(surface, "text-widget", None)
    machine.set_mode(ViewMode.TEXT)
    surface.events.clear()
    assert not machine.set_mode(ViewMode.NONE)
    assert not machine.set_mode(ViewMode.IMAGE)
    assert not machine.set_mode("sideways")
    assert surface.events == []
    assert machine.current is ViewMode.TEXT
