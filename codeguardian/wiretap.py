"""
Wiretap — a structured record of what went over the wire.

Two parts:
  1. WireLog: writes one JSONL entry per outbound message and inbound reply
  2. live_tap(): reads the JSONL and renders a color-coded view

The wire log is separate from the debug log. It records exactly which
messages were sent to which model after windowing, and what came back.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

# ANSI colors
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_USER = "\033[96m"      # cyan
C_ASSISTANT = "\033[93m"  # yellow
C_SYSTEM = "\033[90m"     # gray
C_MODEL = "\033[95m"      # magenta
C_ERROR = "\033[91m"      # red

ROLE_COLORS = {
    "user": C_USER,
    "assistant": C_ASSISTANT,
    "system": C_SYSTEM,
}

MAX_CONTENT = 2000


class WireLog:
    """
    Structured JSONL logger for the wire.

    Format:
        {"ts": "...", "dir": "outbound|inbound", "role": "...",
         "model": "...", "req": 3, "len": 123, "content": "..."}

    Writes come from worker threads, so they are serialised with a lock.
    """

    def __init__(self, log_path: str):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = None
        self._lock = threading.Lock()

    def _ensure_open(self):
        if self._file is None:
            self._file = open(self.log_path, "a", buffering=1)  # line-buffered

    def log(
        self,
        direction: str,
        role: str,
        content: str,
        model: str = "",
        request_id: int = 0,
        error: bool = False,
    ):
        """Write a wire log entry."""
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "dir": direction,
            "role": role,
            "model": model,
            "req": request_id,
            "len": len(content),
        }
        if error:
            entry["error"] = True

        if len(content) <= MAX_CONTENT:
            entry["content"] = content
        else:
            half = MAX_CONTENT // 2
            entry["content"] = (
                content[:half]
                + f"\n\n[... {len(content) - MAX_CONTENT} chars truncated ...]\n\n"
                + content[-half:]
            )

        with self._lock:
            self._ensure_open()
            self._file.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def log_request(self, body: dict, request_id: int = 0):
        """Log every message of an outbound request body."""
        model = body.get("model", "")
        for msg in body.get("messages", []):
            self.log("outbound", msg.get("role", "?"), msg.get("content", ""), model, request_id)

    def close(self):
        with self._lock:
            if self._file:
                self._file.close()
                self._file = None


def _format_entry(entry: dict, raw: bool = False) -> str:
    """Format a single wire log entry for display."""
    if raw:
        return json.dumps(entry, ensure_ascii=False)

    ts = entry.get("ts", "")
    try:
        time_str = datetime.fromisoformat(ts).strftime("%H:%M:%S")
    except (ValueError, TypeError):
        time_str = ts[:8] if ts else "??:??:??"

    role = entry.get("role", "?")
    content = entry.get("content", "")
    color = C_ERROR if entry.get("error") else ROLE_COLORS.get(role, C_RESET)
    arrow = "──▶" if entry.get("dir") == "outbound" else "◀──"

    header = f"  {C_DIM}{time_str}{C_RESET} {C_DIM}{arrow}{C_RESET} {color}{C_BOLD}{role.upper()}{C_RESET}"
    if entry.get("model"):
        header += f"  {C_MODEL}[{entry['model']}]{C_RESET}"
    if entry.get("req"):
        header += f"  {C_DIM}#{entry['req']}{C_RESET}"
    header += f"  {C_DIM}({entry.get('len', 0)} chars){C_RESET}"

    lines = [header]
    for cline in content[:500].split("\n")[:15]:
        lines.append(f"      {cline}")
    lines.append(f"  {C_DIM}{'─' * 60}{C_RESET}")
    return "\n".join(lines)


def _print_line(line: str, role_filter: str | None, raw: bool):
    line = line.strip()
    if not line:
        return
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return
    if role_filter and entry.get("role") != role_filter:
        return
    print(_format_entry(entry, raw=raw))


def live_tap(
    log_path: str | None = None,
    follow: bool = True,
    last_n: int = 20,
    role_filter: str | None = None,
    raw: bool = False,
):
    """
    Tail the wire log.

    Args:
        log_path: Path to wire.jsonl. If None, reads from config.
        follow: Keep watching for new entries (tail -f behavior).
        last_n: Show this many recent entries before following.
        role_filter: Only show entries matching this role.
        raw: Output raw JSONL instead of formatted.
    """
    if log_path is None:
        from codeguardian.config import get_config
        log_path = get_config().get("wiretap", {}).get("path", "./data/wire.jsonl")

    wire_path = Path(log_path)
    if not wire_path.exists():
        print(f"  ✗  No wire log found at {wire_path}")
        print("     Enable wiretap in config.yaml and send a request first.")
        return

    with open(wire_path) as f:
        all_lines = f.readlines()
    for line in all_lines[max(0, len(all_lines) - last_n):]:
        _print_line(line, role_filter, raw)

    if not follow:
        return

    try:
        with open(wire_path) as f:
            f.seek(0, 2)
            while True:
                line = f.readline()
                if not line:
                    time.sleep(0.1)
                    continue
                _print_line(line, role_filter, raw)
    except KeyboardInterrupt:
        if not raw:
            print(f"\n  {C_DIM}[tap closed]{C_RESET}")
