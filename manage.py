#!/usr/bin/env python3
"""CLI entry point for project discovery operations.

Usage:
    python manage.py <command> [options]

All output is JSON — easy to parse by the UI layer and scripts.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent dir to path so `from discovery import ...` works
sys.path.insert(0, str(Path(__file__).parent))

from discovery.models import to_json
from discovery.service import ProjectDiscovery
from discovery.settings import Settings
from discovery.validation import ProjectError


def main() -> None:
    parser = argparse.ArgumentParser(description="Project and session discovery")
    sub = parser.add_subparsers(dest="command")

    # --- Project commands ---
    sub.add_parser("list-projects", help="List all known projects with recent sessions")

    p = sub.add_parser("add-project", help="Create and register a project under PROJECT_BASE_DIR")
    p.add_argument("name", help="Directory name to create")
    p.add_argument("--display-name", help="Custom display name")

    p = sub.add_parser("rename-project", help="Set or clear a project's display name")
    p.add_argument("project")
    p.add_argument("--display-name", default="", help="New name (empty clears it)")

    p = sub.add_parser("delete-project", help="Delete a project without sessions")
    p.add_argument("project")

    p = sub.add_parser("canonical-path", help="Show the working directory inferred from logs")
    p.add_argument("project")

    # --- Session commands ---
    p = sub.add_parser("list-sessions", help="List sessions of a project")
    p.add_argument("project")
    p.add_argument("--limit", type=int, default=5)
    p.add_argument("--offset", type=int, default=0)

    p = sub.add_parser("session-messages", help="Raw entries of one session")
    p.add_argument("project")
    p.add_argument("session_id")
    p.add_argument("--limit", type=int, help="Page size, counted back from the newest entry")
    p.add_argument("--offset", type=int, default=0)

    p = sub.add_parser("delete-session", help="Remove a session from the project's logs")
    p.add_argument("project")
    p.add_argument("session_id")

    p = sub.add_parser("cursor-sessions", help="Cursor sessions recorded for a project path")
    p.add_argument("path", help="Absolute project path")

    # --- Web server ---
    p = sub.add_parser("serve", help="Start the HTTP API server")
    p.add_argument("--port", type=int, default=9000)
    p.add_argument("--host", default="127.0.0.1")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    result = _dispatch(args)
    print(json.dumps(result, indent=2, ensure_ascii=False))
    if isinstance(result, dict) and "error" in result:
        sys.exit(1)


def _dispatch(args: argparse.Namespace, discovery: ProjectDiscovery | None = None) -> dict | list:
    cmd = args.command
    discovery = discovery or ProjectDiscovery(Settings.from_env())

    try:
        if cmd == "list-projects":
            return to_json(discovery.list_projects())

        if cmd == "add-project":
            result = discovery.add_project(args.name, args.display_name)
            return to_json(result)

        if cmd == "rename-project":
            entry = discovery.rename_project(args.project, args.display_name)
            return {"project": args.project, "display_name": entry.display_name if entry else None}

        if cmd == "delete-project":
            discovery.delete_project(args.project)
            return {"project": args.project, "status": "deleted"}

        if cmd == "canonical-path":
            return {"project": args.project, "path": discovery.extract_canonical_path(args.project)}

        if cmd == "list-sessions":
            return to_json(discovery.list_sessions(args.project, args.limit, args.offset))

        if cmd == "session-messages":
            page = discovery.get_session_messages(args.project, args.session_id, args.limit, args.offset)
            return to_json(page)

        if cmd == "delete-session":
            rewritten = discovery.delete_session(args.project, args.session_id)
            return {"session_id": args.session_id, "files_rewritten": rewritten}

        if cmd == "cursor-sessions":
            return to_json(discovery.list_cursor_sessions(args.path))
    except ProjectError as e:
        return {"error": str(e), "code": str(e.kind)}
    except ValueError as e:
        return {"error": str(e), "code": "VALIDATION_ERROR"}

    if cmd == "serve":
        _serve(args.host, args.port)
        return {}  # never reached — uvicorn runs until interrupted

    return {"error": f"Unknown command: {cmd}"}


def _serve(host: str, port: int) -> None:
    """Start the HTTP API via uvicorn."""
    import uvicorn

    web_dir = Path(__file__).parent / "web"
    sys.path.insert(0, str(web_dir))

    print(f"Project API: http://{host}:{port}")
    uvicorn.run(
        "app:app",
        host=host,
        port=port,
        log_level="warning",
        app_dir=str(web_dir),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    main()
