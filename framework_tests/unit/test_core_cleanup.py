"""Tests for exit-time cleanup hooks."""

from unittest.mock import patch

from corfu_universe.core.cleanup import CleanupRegistry


def test_run_all_in_reverse_order():
    registry = CleanupRegistry(register_atexit=False)
    calls = []
    registry.register("first", lambda: calls.append("first"))
    registry.register("second", lambda: calls.append("second"))

    registry.run_all()

    assert calls == ["second", "first"]
    assert registry.keys() == []


def test_failing_callback_does_not_stop_others():
    registry = CleanupRegistry(register_atexit=False)
    calls = []

    def boom():
        raise RuntimeError("boom")

    registry.register("ok", lambda: calls.append("ok"))
    registry.register("boom", boom)

    registry.run_all()

    assert calls == ["ok"]


def test_unregister_removes_callback():
    registry = CleanupRegistry(register_atexit=False)
    calls = []
    registry.register("node9000", lambda: calls.append("node9000"))

    assert registry.unregister("node9000") is not None
    assert registry.unregister("node9000") is None
    registry.run_all()

    assert calls == []


def test_atexit_installed_lazily_once():
    with patch("corfu_universe.core.cleanup.atexit.register") as mock_register:
        registry = CleanupRegistry()
        mock_register.assert_not_called()

        registry.register("a", lambda: None)
        registry.register("b", lambda: None)

        mock_register.assert_called_once_with(registry.run_all)


def test_atexit_disabled():
    with patch("corfu_universe.core.cleanup.atexit.register") as mock_register:
        CleanupRegistry(register_atexit=False).register("a", lambda: None)

        mock_register.assert_not_called()
