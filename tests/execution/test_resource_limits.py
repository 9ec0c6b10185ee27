"""Tests for child-process resource limits.

The resource module is mocked so tests run on any platform.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from testdaemon.execution.limits import ResourceLimits


def _mock_resource() -> MagicMock:
    mock_resource = MagicMock()
    mock_resource.RLIMIT_AS = 5  # arbitrary sentinels
    mock_resource.RLIMIT_CPU = 0
    mock_resource.RLIM_INFINITY = -1
    return mock_resource


class TestResourceLimits:
    def test_sets_memory_and_cpu(self):
        mock_resource = _mock_resource()
        limits = ResourceLimits(memory_bytes=2 * 1024**3, cpu_seconds=60)

        with patch.dict("sys.modules", {"resource": mock_resource}):
            with patch("sys.platform", "linux"):
                limits.apply()

        mock_resource.setrlimit.assert_any_call(
            mock_resource.RLIMIT_AS, (2 * 1024**3, mock_resource.RLIM_INFINITY)
        )
        mock_resource.setrlimit.assert_any_call(
            mock_resource.RLIMIT_CPU, (60, mock_resource.RLIM_INFINITY)
        )

    def test_zero_leaves_limit_untouched(self):
        mock_resource = _mock_resource()
        limits = ResourceLimits(memory_bytes=0, cpu_seconds=30)

        with patch.dict("sys.modules", {"resource": mock_resource}):
            with patch("sys.platform", "linux"):
                limits.apply()

        assert mock_resource.setrlimit.call_count == 1
        assert mock_resource.setrlimit.call_args[0][0] == mock_resource.RLIMIT_CPU

    def test_noop_on_windows(self):
        mock_resource = _mock_resource()

        with patch.dict("sys.modules", {"resource": mock_resource}):
            with patch("sys.platform", "win32"):
                ResourceLimits(memory_bytes=1024, cpu_seconds=1).apply()

        mock_resource.setrlimit.assert_not_called()

    def test_setrlimit_failure_is_logged_not_raised(self):
        mock_resource = _mock_resource()
        mock_resource.setrlimit.side_effect = ValueError("not allowed")

        with patch.dict("sys.modules", {"resource": mock_resource}):
            with patch("sys.platform", "linux"):
                ResourceLimits(cpu_seconds=1).apply()

    def test_is_empty(self):
        assert ResourceLimits().is_empty
        assert not ResourceLimits(cpu_seconds=1).is_empty

    def test_from_settings_clamps_negative(self):
        settings = SimpleNamespace(rlimit_as_bytes=-5, rlimit_cpu_seconds=10)
        limits = ResourceLimits.from_settings(settings)
        assert limits == ResourceLimits(memory_bytes=0, cpu_seconds=10)
