#!/usr/bin/env python3
"""
codeguardian CLI — drive the suggestion engine from a terminal.

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    complete        suggest         Completions for a file at an offset
    explain         why             Short explanation of one line
    chat            ask             Interactive chat (/new, /quit)
    tap             log, tail       Watch the wire log

Every command goes through the same objects an editor integration uses:
the orchestrator's worker pool, a single consumer queue, the parser and
the sanitizer.
"""

import argparse
import sys
from pathlib import Path

from codeguardian import __version__
from codeguardian.surface import Surface

C_RESET = "\033[0m"
C_DIM = "\033[2m"
C_CODE = "\033[93m"


class TerminalSurface(Surface):
    """Prints suggestions instead of drawing a popup."""

    def __init__(self):
        self._visible = False

    @property
    def visible(self) -> bool:
        return self._visible

    def show(self, suggestions: list[str]):
        self._visible = True
        self._render(suggestions)

    def update(self, suggestions: list[str]):
        self._render(suggestions)

    def close(self):
        self._visible = False

    @staticmethod
    def _render(suggestions: list[str]):
        for i, text in enumerate(suggestions, 1):
            print(f"  {C_DIM}[{i}]{C_RESET}")
            for line in text.split("\n"):
                print(f"  {C_CODE}{line}{C_RESET}")
            print()


def _surface_factory():
    return TerminalSurface()


def _build(cfg):
    """Construct backend, consumer queue and orchestrator from config."""
    from codeguardian.backends import OpenAICompatibleBackend
    from codeguardian.orchestrator import ConsumerQueue, RequestOrchestrator

    backend = OpenAICompatibleBackend.from_config(cfg)
    consumer = ConsumerQueue()
    orchestrator = RequestOrchestrator.from_config(cfg, backend, deliver=consumer)
    return orchestrator, consumer


def _load():
    from codeguardian.config import ConfigError, get_config, setup_logging

    cfg = get_config()
    setup_logging(cfg)
    try:
        orchestrator, consumer = _build(cfg)
    except ConfigError as e:
        print(f"  ✗  {e}")
        sys.exit(1)
    return cfg, orchestrator, consumer


def _read_buffer(path: str, offset: int):
    from codeguardian.buffer import EditorBuffer

    text = Path(path).read_text(encoding="utf-8")
    caret = len(text) if offset < 0 else offset
    return EditorBuffer(text=text, caret=caret)


def _line_end_offset(text: str, line_no: int) -> int:
    """Offset at the end of 1-based line `line_no`."""
    lines = text.split("\n")
    line_no = max(1, min(line_no, len(lines)))
    return sum(len(l) + 1 for l in lines[:line_no - 1]) + len(lines[line_no - 1])


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_complete(args):
    """Request completions for FILE at OFFSET and print them."""
    from codeguardian.assistant import EditorAssistant
    from codeguardian.surface import SurfaceController

    cfg, orchestrator, consumer = _load()
    buffer = _read_buffer(args.file, args.offset)
    controller = SurfaceController(_surface_factory)
    assistant = EditorAssistant(orchestrator, controller, cfg)

    with orchestrator:
        assistant.request_completions(buffer).result()
        consumer.run_pending()

    if not controller.active:
        print("  No suggestions.")
        return
    if args.apply is not None:
        inserted = controller.apply_selected(args.apply - 1, buffer)
        if inserted is None:
            print("  Suggestion was redundant, nothing applied.")
            return
        Path(args.file).write_text(buffer.text, encoding="utf-8")
        print(f"  ✓  Applied suggestion {args.apply} to {args.file}")


def cmd_explain(args):
    """Fetch a short explanation for one line of FILE."""
    from codeguardian.assistant import EditorAssistant
    from codeguardian.surface import SurfaceController

    cfg, orchestrator, consumer = _load()
    buffer = _read_buffer(args.file, 0)
    buffer.move_caret(_line_end_offset(buffer.text, args.line))
    assistant = EditorAssistant(orchestrator, SurfaceController(_surface_factory), cfg)

    with orchestrator:
        assistant.request_explanation(buffer).result()
        consumer.run_pending()

    explanation = assistant.cache.pop(buffer.caret)
    if explanation is None:
        print("  No explanation available.")
    else:
        print(f"  {buffer.current_line.strip()}")
        print(f"  {C_DIM}// {explanation}{C_RESET}")


def cmd_chat(args):
    """Interactive chat against the configured backend."""
    from codeguardian.assistant import ChatSession

    cfg, orchestrator, consumer = _load()
    chat = ChatSession(orchestrator, cfg)

    print("  codeguardian chat — /new starts over, /quit exits")
    with orchestrator:
        while True:
            try:
                line = input("  you › ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            cmd = line.strip()
            if cmd in ("/quit", "/exit"):
                break
            if cmd == "/new":
                dropped = chat.new_conversation()
                print(f"  {C_DIM}[new conversation — archived {len(dropped)} messages]{C_RESET}")
                continue
            if chat.send(cmd) is None:
                continue
            while chat.transcript()[-1].pending:
                consumer.run_pending(timeout=0.1)
            consumer.run_pending()
            reply = chat.transcript()[-1]
            print(f"  {C_CODE}ai ›{C_RESET} {reply.content}")


def cmd_tap(args):
    """Watch the wire log."""
    from codeguardian.wiretap import live_tap
    live_tap(
        log_path=args.log,
        follow=not args.no_follow,
        last_n=args.last,
        role_filter=args.role,
        raw=args.raw,
    )


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under several names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="codeguardian",
        description="codeguardian — model-backed completions and explanations for editors.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"codeguardian {__version__}",
    )
    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_complete(p):
        p.add_argument("file", help="Source file")
        p.add_argument("offset", type=int, nargs="?", default=-1,
                       help="Caret offset (default: end of file)")
        p.add_argument("--apply", "-a", type=int, default=None,
                       help="Insert suggestion N (1-based) and write the file")

    _add_command(sub, ["complete", "suggest"],
                 "Completions for a file at an offset", cmd_complete, setup_complete)

    def setup_explain(p):
        p.add_argument("file", help="Source file")
        p.add_argument("line", type=int, help="1-based line number")

    _add_command(sub, ["explain", "why"],
                 "Short explanation of one line", cmd_explain, setup_explain)

    _add_command(sub, ["chat", "ask"], "Interactive chat", cmd_chat)

    def setup_tap(p):
        p.add_argument("--log", default=None, help="Path to wire.jsonl (default: from config)")
        p.add_argument("--last", "-n", type=int, default=20, help="Show last N entries before following")
        p.add_argument("--role", "-r", choices=["system", "user", "assistant"], default=None,
                       help="Filter by role")
        p.add_argument("--no-follow", action="store_true", help="Don't follow, just show last entries")
        p.add_argument("--raw", action="store_true", help="Raw JSONL output, no formatting")

    _add_command(sub, ["tap", "log", "tail"],
                 "Watch the wire log", cmd_tap, setup_tap)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
