#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import os
import re
from collections.abc import Callable  # noqa: TCH003
from enum import Enum
from pathlib import Path
from typing import Any

import typer

from modelprov.errors import FetchPhaseError, ProvisioningError

_HF_TOKEN_PAT = re.compile(r"(hf_[A-Za-z0-9]{6})[A-Za-z0-9]+")
_SECRET_ENV_VARS = ("HF_TOKEN", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN")


def sanitize(msg: str) -> str:
    """Redacts Hugging Face tokens and the values of secret env vars from a message."""
    if not msg:
        return msg
    msg = _HF_TOKEN_PAT.sub(r"\1***REDACTED***", msg)
    for name in _SECRET_ENV_VARS:
        secret = os.getenv(name)
        if secret:
            msg = msg.replace(secret, f"<{name}>")
    return msg


def to_jsonable(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, list | tuple | set):
        return [to_jsonable(x) for x in obj]
    return obj


def _fail(lines: list[str]) -> typer.Exit:
    for line in lines:
        typer.secho(sanitize(line), fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


def run_cli(fn: Callable[[], None]) -> None:
    """Runs a command body and turns provisioning failures into readable stderr lines plus exit code 1."""
    try:
        fn()
    except FetchPhaseError as exc:
        lines = [f"Fetch failed for {name!r} → {err}" for name, err in exc.failures]
        raise _fail(lines) from None
    except ProvisioningError as exc:
        raise _fail([f"Error: {exc}", *(f"  {note}" for note in getattr(exc, "__notes__", []))]) from None
    except (typer.Exit, typer.BadParameter):
        raise
    except Exception as exc:
        raise _fail([f"Error: {exc}"]) from None
