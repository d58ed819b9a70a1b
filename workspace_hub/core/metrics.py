"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_workspaces_created_total: Dict[str, int] = defaultdict(int)
_invitations_created_total: Dict[str, int] = defaultdict(int)
_invitation_accepts_total: Dict[str, int] = defaultdict(int)
_activity_log_failures_total: Dict[str, int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_workspace_created(*, workspace_type: str) -> None:
    with _lock:
        _workspaces_created_total[_normalize_label(workspace_type)] += 1


def record_invitation_created(*, role: str) -> None:
    with _lock:
        _invitations_created_total[_normalize_label(role)] += 1


def record_invitation_accept(*, outcome: str) -> None:
    """Count accept attempts by outcome (``accepted`` or ``rejected``)."""

    with _lock:
        _invitation_accepts_total[_normalize_label(outcome)] += 1


def record_activity_log_failure(*, action: str) -> None:
    with _lock:
        _activity_log_failures_total[_normalize_label(action)] += 1


def _render_counter(
    lines: list[str],
    *,
    name: str,
    help_text: str,
    label: str,
    values: Dict[str, int],
) -> None:
    lines.extend(
        [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} counter",
        ]
    )
    for key, value in sorted(values.items()):
        lines.append(f'{name}{{{label}="{_escape_label(key)}"}} {value}')


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        workspaces_created = dict(_workspaces_created_total)
        invitations_created = dict(_invitations_created_total)
        invitation_accepts = dict(_invitation_accepts_total)
        activity_failures = dict(_activity_log_failures_total)

    lines = [
        "# HELP workspace_hub_build_info Build metadata.",
        "# TYPE workspace_hub_build_info gauge",
        (
            f'workspace_hub_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP workspace_hub_process_uptime_seconds Process uptime in seconds.",
        "# TYPE workspace_hub_process_uptime_seconds gauge",
        f"workspace_hub_process_uptime_seconds {uptime:.6f}",
        "# HELP workspace_hub_http_requests_total Total HTTP requests.",
        "# TYPE workspace_hub_http_requests_total counter",
    ]

    for (method, path, status), value in sorted(http_total.items()):
        lines.append(
            (
                f'workspace_hub_http_requests_total{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}",status="{_escape_label(status)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP workspace_hub_http_request_duration_seconds Request duration summary.",
            "# TYPE workspace_hub_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'workspace_hub_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'workspace_hub_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    _render_counter(
        lines,
        name="workspace_hub_workspaces_created_total",
        help_text="Workspaces created by type.",
        label="type",
        values=workspaces_created,
    )
    _render_counter(
        lines,
        name="workspace_hub_invitations_created_total",
        help_text="Invitations issued by proposed role.",
        label="role",
        values=invitations_created,
    )
    _render_counter(
        lines,
        name="workspace_hub_invitation_accepts_total",
        help_text="Invitation accept attempts by outcome.",
        label="outcome",
        values=invitation_accepts,
    )
    _render_counter(
        lines,
        name="workspace_hub_activity_log_failures_total",
        help_text="Activity entries that could not be persisted.",
        label="action",
        values=activity_failures,
    )

    return "\n".join(lines) + "\n"


def reset_metrics_for_tests() -> None:
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _workspaces_created_total.clear()
        _invitations_created_total.clear()
        _invitation_accepts_total.clear()
        _activity_log_failures_total.clear()
