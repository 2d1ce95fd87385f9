#!/usr/bin/env python3
"""Command-line entry point.

Commands:
- verify-env: token from a .env file, format + API
- check-api: token from a file, format + API, optional cleanup
- test-direct: token from argv, any validation method
- quick: format-only boolean
- extract: decode user id and creation time

Exit code is 0 for a valid token and 1 otherwise (including pre-flight errors).
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable

import httpx

from .checker import TokenChecker, quick_format_check
from .cli import parse_args
from .format_validator import describe_token
from .logging_conf import get_logger, setup_logging
from .report import render_description, render_error, render_result
from .types import CheckerSettings, TokenCheckError, ValidationMethod, ValidationResult

logger = get_logger("token_checker.cli")

Printer = Callable[[str], None]


def _settings_for(args: argparse.Namespace) -> CheckerSettings:
    common = {"api_base_url": args.api_base_url, "user_agent": args.user_agent}
    if args.command == "verify-env":
        return CheckerSettings.build(check_api=args.api, timeout=args.timeout, **common)
    if args.command == "check-api":
        return CheckerSettings.build(
            check_api=True, timeout=args.timeout, include_user_info=args.user_info, **common
        )
    return CheckerSettings.build(
        check_api=not args.format_only, timeout=args.timeout, **common
    )


def _method_for(args: argparse.Namespace) -> ValidationMethod:
    if getattr(args, "format_only", False):
        return ValidationMethod.format
    if getattr(args, "api_only", False):
        return ValidationMethod.api
    return ValidationMethod.both


def _emit_result(result: ValidationResult, as_json: bool, out: Printer) -> int:
    if as_json:
        out(json.dumps(result.to_dict(), indent=2))
    else:
        for line in render_result(result):
            out(line)
    return 0 if result.is_valid else 1


async def run(
    args: argparse.Namespace,
    *,
    client: httpx.AsyncClient | None = None,
    out: Printer = print,
) -> int:
    """Execute one parsed command and return the process exit code."""
    try:
        if args.command == "quick":
            ok = quick_format_check(args.token)
            if args.json:
                out(json.dumps({"valid": ok}))
            else:
                out("Token format appears valid" if ok else "Token format is invalid")
            return 0 if ok else 1

        if args.command == "extract":
            info = describe_token(args.token)
            if args.json:
                out(json.dumps(info, indent=2))
            else:
                for line in render_description(info):
                    out(line)
            return 0

        checker = TokenChecker(_settings_for(args), client=client)
        if args.command == "verify-env":
            result = await checker.validate_from_env(args.path, args.var)
        elif args.command == "check-api":
            result = await checker.validate_from_file(args.file, cleanup=args.cleanup)
        else:
            result = await checker.validate_direct(args.token, _method_for(args))
    except TokenCheckError as e:
        logger.warning(
            "cli.preflight_error",
            extra={"event": "preflight_error", "command": args.command, "kind": e.kind.value},
        )
        if args.json:
            out(json.dumps({"error": e.message, "kind": e.kind.value}))
        else:
            for line in render_error(e):
                out(line)
        return 1

    return _emit_result(result, args.json, out)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level)
    code = asyncio.run(run(args))
    raise SystemExit(code)


if __name__ == "__main__":
    main()
