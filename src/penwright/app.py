"""Command-line entry point for running a Penwright agent turn against a document."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.client import AIClient, ClientSettings
from .ai.orchestration import AgentCallbacks, AgentSession, RunStatus
from .ai.transport import OpenAITransport
from .documents.persistence import DocumentLoadError
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    return active_store.load(overrides=overrides)


def build_client_settings(settings: Settings, *, debug_logging: bool = False) -> ClientSettings:
    return ClientSettings(
        base_url=settings.base_url,
        api_key=settings.api_key,
        model=settings.model,
        organization=settings.organization,
        temperature=settings.temperature,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        max_completion_tokens=settings.max_completion_tokens,
        default_headers=settings.default_headers,
        metadata=settings.metadata,
        debug_logging=debug_logging or settings.debug_logging,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``penwright`` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("PENWRIGHT_DEBUG", default=False)
    logging_utils.configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("PENWRIGHT_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return EXIT_OK

    if settings.debug_logging and not debug:
        logging_utils.configure_logging(True, force=True)
        debug = True

    if args.document is None:
        print("A document path is required unless --dump-settings is given.", file=sys.stderr)
        return EXIT_USAGE
    prompt = args.prompt if args.prompt is not None else _read_prompt(sys.stdin)
    if not prompt.strip():
        print("Nothing to send: pass --prompt or pipe a message on stdin.", file=sys.stderr)
        return EXIT_USAGE
    if not settings.has_api_key:
        print("No API key configured. Set PENWRIGHT_API_KEY and try again.", file=sys.stderr)
        return EXIT_USAGE

    try:
        return asyncio.run(
            run_turn(
                settings,
                Path(args.document),
                prompt,
                create=args.create,
                debug_logging=debug,
            )
        )
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
        return EXIT_FAILURE


async def run_turn(
    settings: Settings,
    document_path: Path,
    prompt: str,
    *,
    create: bool = False,
    debug_logging: bool = False,
    client: AIClient | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Open *document_path*, send *prompt* as one agent turn, and save the result."""

    out = stdout or sys.stdout
    err = stderr or sys.stderr
    ai_client = client or AIClient(build_client_settings(settings, debug_logging=debug_logging))
    session = AgentSession(OpenAITransport(ai_client), settings=settings)

    def _on_chunk(text: str) -> None:
        out.write(text)
        out.flush()

    def _on_error(message: str, credential_error: bool) -> None:
        if credential_error:
            err.write(f"\nThe model endpoint rejected the credentials: {message}\n")
            err.write("Check PENWRIGHT_API_KEY and the configured base_url.\n")
        else:
            err.write(f"\nAgent turn failed: {message}\n")

    try:
        try:
            session.open_path(document_path, create=create)
        except DocumentLoadError as exc:
            err.write(f"Unable to open document: {exc}\n")
            return EXIT_FAILURE

        result = await session.send_message(prompt, AgentCallbacks(on_error=_on_error, on_chunk=_on_chunk))
        out.write("\n")
        if result.status is RunStatus.MAX_ITERATIONS:
            err.write(f"Stopped after {result.iterations} model calls without a final answer.\n")
        _LOGGER.info(
            "Turn finished (status=%s, iterations=%s, tools=%s)",
            result.status.value,
            result.iterations,
            len(result.tool_results),
        )
        return EXIT_FAILURE if result.status is RunStatus.ERROR else EXIT_OK
    finally:
        await session.aclose()
        if client is None:
            await ai_client.aclose()


def _read_prompt(stream: TextIO) -> str:
    if stream.isatty():
        return ""
    return stream.read()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="penwright",
        description="Run one writing-agent turn against a markdown document.",
    )
    parser.add_argument("document", nargs="?", help="Markdown document to work on.")
    parser.add_argument(
        "--prompt",
        "-p",
        help="Message to send to the agent (read from stdin when omitted).",
    )
    parser.add_argument(
        "--create",
        action="store_true",
        help="Create the document if it does not exist yet.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.penwright/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if normalized.lower() in {"none", "null"}:
        return None
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is dict:
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return _resolve_annotation(args[0])


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("PENWRIGHT_"))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
