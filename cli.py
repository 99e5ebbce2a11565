"""
CLI entry point for worklog-notes. Wires the pipeline: settings -> resolve -> fetch -> summarize -> report
"""

import argparse
import json
import logging
import os
import sys
import webbrowser
from datetime import datetime, timezone

from errors import ValidationError, handle_action
from ingest.confluence import ConfluenceClient
from ingest.jira import JiraClient
from notes import default_page_title, generate_meeting_notes
from report.options import load_report_options
from report.renderer import render
from resolve.resolver import list_boards_for_all_projects, list_project_options, list_sprints_for_all_boards, resolve_board_id, resolve_project_key
from storage.retry import configure_retry
from storage.settings import EnvSettingsProvider, SettingsStore, require_settings

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("html", "storage", "md", "csv", "json")
EXTENSIONS = {"html": "html", "storage": "html", "md": "md", "csv": "csv", "json": "json"}


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=lambda o: dict(vars(o))))


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def _settings_provider(args):
    if args.settings_db:
        return SettingsStore(args.settings_db)
    return EnvSettingsProvider()


def _client(args, provider) -> JiraClient:
    return JiraClient(require_settings(provider), timeout=args.timeout)


def _save_settings(args, provider):
    if not isinstance(provider, SettingsStore):
        raise ValidationError("--save-settings requires --settings-db.")
    config = provider.save(
        org_url=args.org_url,
        auth_email=args.email,
        api_key=args.api_key,
        ai_endpoint=args.ai_endpoint,
        ai_model=args.ai_model,
        preferred_project=args.preferred_project,
        preferred_users=args.preferred_users,
    )
    print("Settings saved.")
    return config.as_public_dict()


def _show_settings(args, provider):
    settings = require_settings(provider).as_public_dict()
    _print_json(settings)
    return settings


def _list_projects(args, provider):
    options = list_project_options(_client(args, provider))
    _print_json(options)
    return options


def _list_boards(args, provider):
    entries = list_boards_for_all_projects(_client(args, provider), args.max_workers)
    data = [{"projectKey": e["projectKey"], "boards": [{"id": b.id, "name": b.name, "type": b.type} for b in e["boards"]]} for e in entries]
    _print_json(data)
    return data


def _list_sprints(args, provider):
    entries = list_sprints_for_all_boards(_client(args, provider), args.max_workers)
    data = [
        dict(e, sprints=[{"id": s.id, "name": s.name, "state": s.state, "startDate": s.start_date, "endDate": s.end_date} for s in e["sprints"]])
        for e in entries
    ]
    _print_json(data)
    return data


def _list_members(args, provider):
    client = _client(args, provider)
    project_key = _project_key(args, client)
    members = client.list_project_members(project_key) if project_key else client.list_users()
    data = [{"accountId": m.account_id, "displayName": m.display_name} for m in members]
    _print_json(data)
    return data


def _project_key(args, client):
    if args.project_key:
        return args.project_key
    if args.project:
        return resolve_project_key(client, args.project)
    return client.config.preferred_project_id or ""


def _board_id(args, client):
    if args.board_id:
        return args.board_id
    if args.board:
        return resolve_board_id(client, args.board)
    return None


def write_output(fmt: str, rendered: str, args, default_stem: str):
    """Write output to file or stdout and optionally open HTML in browser."""
    if not args.out_file and not args.open:
        print(rendered)
        return None
    out_path = args.out_file.strip() or f"{default_stem}_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}.{EXTENSIONS[fmt]}"
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        f.write(rendered)
    print(f"Wrote notes to {out_path}")
    if args.open and fmt == "html":
        _open_file_in_browser(out_path)
    return out_path


def _generate_notes(args, provider):
    config = require_settings(provider)
    client = JiraClient(config, timeout=args.timeout)
    if not args.start or not args.end:
        raise ValidationError("Both --start and --end are required to generate notes.")
    project_key = _project_key(args, client)
    if not project_key:
        raise ValidationError("A project is required: pass --project, --project-key or set a preferred project.")
    board_id = _board_id(args, client)
    options = load_report_options(args.report_config)
    title = args.page_title or options.title or default_page_title(project_key, args.start, args.end)
    user_ids = args.user or config.preferred_user_ids

    notes = generate_meeting_notes(
        config,
        project_key,
        args.start,
        args.end,
        board_id=board_id,
        sprint_id=args.sprint_id,
        user_ids=user_ids,
        client=client,
        max_workers=args.max_workers,
        options=options,
        title=title,
    )
    fmt = args.output.lower()
    rendered = render(notes.records, fmt=fmt, options=options, title=title, generated_at=datetime.now(timezone.utc).isoformat())
    out_path = write_output(fmt, rendered, args, f"meeting_notes_{project_key}")

    page = None
    if args.publish_space:
        confluence = ConfluenceClient(config, timeout=args.timeout)
        page = confluence.publish(args.publish_space, args.space_name, title, notes.to_storage())
        print(f"Published '{title}' to space {args.publish_space}")
    return {"title": title, "records": len(notes.records), "out_file": out_path, "page_id": (page or {}).get("id")}


def dispatch(args, provider):
    """Run the first requested action, falling back to notes generation."""
    flag_actions = [
        (args.save_settings, _save_settings),
        (args.show_settings, _show_settings),
        (args.list_projects, _list_projects),
        (args.list_boards, _list_boards),
        (args.list_sprints, _list_sprints),
        (args.list_members, _list_members),
    ]
    for enabled, handler in flag_actions:
        if enabled:
            return handler(args, provider)
    return _generate_notes(args, provider)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate meeting notes from Jira work logs")
    parser.add_argument("--start", type=str, default="", help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, default="", help="End date (YYYY-MM-DD)")
    parser.add_argument("--project", type=str, default="", help="Project name (resolved to its key)")
    parser.add_argument("--project-key", type=str, default="", help="Project key; takes precedence over --project")
    parser.add_argument("--board", type=str, default="", help="Board name used for story points")
    parser.add_argument("--board-id", type=int, default=None, help="Board id; takes precedence over --board")
    parser.add_argument("--sprint-id", type=int, default=None, help="Limit the notes to the issues of this sprint")
    parser.add_argument("--user", action="append", default=[], help="Assignee account id to include (repeatable)")
    parser.add_argument("--output", type=str, choices=OUTPUT_FORMATS, default="html", help="Output format")
    parser.add_argument("--out-file", type=str, default="", help="Output file path. If omitted output goes to stdout unless --open is set")
    parser.add_argument("--open", action="store_true", help="Write an HTML file and open it in the default browser")
    parser.add_argument("--report-config", type=str, default="", help="YAML file with report layout options")
    parser.add_argument("--publish-space", type=str, default="", help="Confluence space key to publish the notes to")
    parser.add_argument("--space-name", type=str, default="", help="Name used when the Confluence space has to be created")
    parser.add_argument("--page-title", type=str, default="", help="Title of the notes (defaults to '<KEY> Meeting Notes <start> to <end>')")
    parser.add_argument("--settings-db", type=str, default=os.getenv("NOTES_SETTINGS_DB", ""), help="SQLite settings file; environment variables are used when omitted")
    parser.add_argument("--save-settings", action="store_true", help="Validate and store the settings given below in --settings-db")
    parser.add_argument("--org-url", type=str, default="")
    parser.add_argument("--email", type=str, default="")
    parser.add_argument("--api-key", type=str, default="")
    parser.add_argument("--ai-endpoint", type=str, default="")
    parser.add_argument("--ai-model", type=str, default="")
    parser.add_argument("--preferred-project", type=str, default="")
    parser.add_argument("--preferred-users", type=str, default="", help="Comma separated account ids")
    parser.add_argument("--show-settings", action="store_true", help="Print the current settings (API key masked)")
    parser.add_argument("--list-projects", action="store_true")
    parser.add_argument("--list-boards", action="store_true")
    parser.add_argument("--list-sprints", action="store_true")
    parser.add_argument("--list-members", action="store_true", help="Members of --project/--project-key, or all users")
    # transport knobs: environment variables NOTES_MAX_RETRIES, NOTES_BACKOFF_BASE, NOTES_MAX_BACKOFF,
    # NOTES_HTTP_TIMEOUT and NOTES_MAX_WORKERS set the defaults.
    parser.add_argument("--max-retries", type=int, default=None, help="Total attempts per HTTP request (overrides NOTES_MAX_RETRIES env)")
    parser.add_argument("--backoff-base", type=float, default=None, help="Base backoff seconds (overrides NOTES_BACKOFF_BASE env)")
    parser.add_argument("--max-backoff", type=float, default=None, help="Maximum backoff cap in seconds (overrides NOTES_MAX_BACKOFF env)")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds (overrides NOTES_HTTP_TIMEOUT env)")
    parser.add_argument("--max-workers", type=int, default=None, help="Concurrent requests per fan-out (overrides NOTES_MAX_WORKERS env)")
    parser.add_argument("--log-level", type=str, default=os.getenv("NOTES_LOG_LEVEL", "WARNING"), help="Logging level")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    configure_retry(max_retries=args.max_retries, backoff_base=args.backoff_base, max_backoff=args.max_backoff, timeout=args.timeout)

    provider = _settings_provider(args)
    try:
        result = handle_action(lambda: dispatch(args, provider))
    finally:
        if isinstance(provider, SettingsStore):
            provider.close()
    if result["status"] != 200:
        print(result["message"], file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
