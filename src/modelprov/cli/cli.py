#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import typer
from rich.traceback import install

from modelprov.cli.cli_utils import run_cli, to_jsonable
from modelprov.config import ProvisioningConfig
from modelprov.logging_config import configure_logging
from modelprov.provisioner import Provisioner

RICH_MARKUP_MODE: Literal["markdown", "rich"] = "rich"
install(show_locals=False)

CTX = {"help_option_names": ["-h", "--help"], "max_content_width": 100}

app = typer.Typer(
    name="modelprov",
    help="Fetch, verify and load the model artifacts a pipeline needs.",
    no_args_is_help=True,
    rich_markup_mode=RICH_MARKUP_MODE,
    context_settings=CTX,
    pretty_exceptions_enable=False,
    add_completion=False,
)

ConfigOption = typer.Option(None, "--config", "-c", help="YAML/JSON provisioning config")
DirOption = typer.Option(None, "--dir", help="Models directory (overrides the config)")


def build_config(config_path: Path | None, **overrides: Any) -> ProvisioningConfig:
    config = ProvisioningConfig.from_uri(config_path) if config_path else ProvisioningConfig()
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return config
    return ProvisioningConfig(**{**config.model_dump(), **overrides})


@app.callback()
def main(debug: bool = typer.Option(False, help="Enable debug logging")) -> None:
    configure_logging(debug)


@app.command("acquire", short_help="Download missing/corrupted models and load all of them.")
def acquire(
    config_path: Path | None = ConfigOption,
    directory: Path | None = DirOption,
    source: str | None = typer.Option(None, "--source", help="huggingface|s3|mirror"),
    mirror_root: Path | None = typer.Option(None, "--mirror", help="Mirror root directory (implies --source mirror)"),
    cpu_only: bool = typer.Option(False, "--cpu-only", help="Restrict models to the CPU"),
    max_retries: int | None = typer.Option(None, "--max-retries", min=0),
):
    def _task() -> None:
        config = build_config(
            config_path,
            directory=str(directory) if directory else None,
            source="mirror" if mirror_root and not source else source,
            mirror_root=str(mirror_root) if mirror_root else None,
            compute_affinity="cpu-only" if cpu_only else None,
            max_retries=max_retries,
        )
        provisioner = Provisioner.from_config(config)
        bundle = provisioner.acquire()
        payload = {
            "directory": provisioner.resolve_directory(),
            "download_seconds": round(bundle.download_duration, 3),
            "load_seconds": round(bundle.load_duration, 3),
            "artifacts": {
                name: {"path": model.path, "attempts": model.attempts} for name, model in bundle.models.items()
            },
        }
        typer.echo(json.dumps(to_jsonable(payload), ensure_ascii=False))

    run_cli(_task)


@app.command("status", short_help="Show whether each model is missing, invalid or valid.")
def status(config_path: Path | None = ConfigOption, directory: Path | None = DirOption):
    def _task() -> None:
        config = build_config(config_path, directory=str(directory) if directory else None)
        provisioner = Provisioner.from_config(config)
        payload = {"directory": provisioner.resolve_directory(), "artifacts": provisioner.status()}
        typer.echo(json.dumps(to_jsonable(payload), ensure_ascii=False))

    run_cli(_task)


@app.command("purge", short_help="Delete a model from the models directory.")
def purge(
    name: str = typer.Argument(..., help="Artifact name"),
    config_path: Path | None = ConfigOption,
    directory: Path | None = DirOption,
):
    def _task() -> None:
        config = build_config(config_path, directory=str(directory) if directory else None)
        provisioner = Provisioner.from_config(config)
        try:
            spec = provisioner.catalog[name]
        except KeyError:
            known = ", ".join(provisioner.catalog.names)
            raise typer.BadParameter(f"unknown artifact {name!r}, expected one of: {known}") from None
        provisioner.store.purge(spec, provisioner.resolve_directory())
        typer.echo("OK")

    run_cli(_task)


if __name__ == "__main__":
    app()
