from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any

import click
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import Settings, load_settings
from .errors import AwbusError, OpError, PersistFailed, UsageError
from .events import wide_event
from .identity import AwsIdentityProvider, IdentityProvider, client_config
from .record import delegated_record, static_record
from .record_codec import credential_process_json, save_record
from .resolver import ProfileResolver
from .rotator import Rotator
from .secret_store import KeyringSecretStore, SecretStore

HELP_TEXT = """\
awbus: AWS credential_process helper backed by the system keyring.

Usage: awbus [COMMAND]

Commands (all act on the profile named by AWS_PROFILE, default "default"):
  load          Print credential_process JSON (default command). Delegated
                profiles are refreshed via STS assume-role when expired.
  rotate        Create a new IAM access key for a static profile, store it,
                then delete the old key.
  store         Store a static profile (AccessKeyId + SecretAccessKey).
  store-assume  Store a delegated profile (RoleArn + SourceProfile). The
                source profile must be static.
  delete        Delete the profile from the keyring.
  version       Print the version.
  help          Print this help.

Environment:
  AWS_PROFILE, AWS_REGION (default us-east-1),
  SESSION_TTL (default 1h, clamped to 15m..12h), SKEW_PAD (default 2m),
  AWBUS_KEYRING_SERVICE, AWBUS_CONNECT_TIMEOUT, AWBUS_READ_TIMEOUT,
  AWBUS_LOG_EVENTS (emit one JSON event line on stderr).

~/.aws/config example:
  [profile work]
  credential_process = env AWS_PROFILE=work awbus load
"""

_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}", soft_wrap=True)


def _rich_warning(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold yellow]warning:[/bold yellow] {escape(msg)}", soft_wrap=True)


def _print_json(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _bootstrap_env() -> None:
    # Discover and load .env without overriding already-exported values.
    load_dotenv()


@dataclass(frozen=True)
class Runtime:
    settings: Settings
    store: SecretStore
    provider: IdentityProvider
    version: str


def build_runtime(settings: Settings, *, version: str = __version__) -> Runtime:
    provider = AwsIdentityProvider(
        region=settings.region,
        config=client_config(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        ),
    )
    return Runtime(
        settings=settings,
        store=KeyringSecretStore(settings.keyring_service),
        provider=provider,
        version=version,
    )


app = typer.Typer(
    name="awbus",
    help="AWS credential_process helper backed by the system keyring.",
    add_completion=False,
    invoke_without_command=True,
)


def _runtime(ctx: typer.Context) -> Runtime:
    if isinstance(ctx.obj, Runtime):
        return ctx.obj
    rt = build_runtime(load_settings())
    ctx.obj = rt
    return rt


@app.callback(invoke_without_command=True)
def app_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        load(ctx)


@app.command("load", help="Print credential_process JSON for AWS_PROFILE, refreshing if needed.")
def load(ctx: typer.Context) -> None:
    rt = _runtime(ctx)
    profile = rt.settings.profile
    with wide_event("load", profile=profile, enabled=rt.settings.log_events) as event:
        resolver = ProfileResolver(rt.store, rt.provider, rt.settings)
        try:
            record = resolver.resolve(profile, event=event)
        except PersistFailed as e:
            if e.record is None:
                raise
            # The exchanged session is valid even though caching it failed.
            _rich_warning(str(e))
            event["outcome"] = "partial_failure"
            record = e.record
    sys.stdout.write(credential_process_json(record) + "\n")


@app.command("rotate", help="Rotate the IAM access key of a static AWS_PROFILE.")
def rotate(ctx: typer.Context) -> None:
    rt = _runtime(ctx)
    profile = rt.settings.profile
    with wide_event("rotate", profile=profile, enabled=rt.settings.log_events) as event:
        result = Rotator(rt.store, rt.provider).rotate(profile, event=event)
        if result.delete_error is not None:
            _rich_warning(f"{result.delete_error} (old key left active; delete it manually)")
            event["outcome"] = "partial_failure"
    _print_json(
        {
            "kind": "awbus.rotate.v1",
            "profile": profile,
            "oldAccessKeyId": result.old_access_key_id,
            "newAccessKeyId": result.new_access_key_id,
            "oldKeyDeleted": result.old_key_deleted,
        }
    )


def _prompt_profile(rt: Runtime) -> str:
    name = typer.prompt(
        f"Enter Profile Name (press Enter for '{rt.settings.profile}')",
        default=rt.settings.profile,
        show_default=False,
    )
    return str(name or "").strip() or rt.settings.profile


@app.command("store", help="Store a static profile (AccessKeyId + SecretAccessKey).")
def store(ctx: typer.Context) -> None:
    rt = _runtime(ctx)
    profile = _prompt_profile(rt)
    access_key_id = typer.prompt("Enter AccessKeyId").strip()
    secret_access_key = typer.prompt("Enter SecretAccessKey", hide_input=True).strip()
    with wide_event("store", profile=profile, enabled=rt.settings.log_events):
        save_record(rt.store, profile, static_record(access_key_id, secret_access_key))
    _print_json({"kind": "awbus.store.v1", "profile": profile, "type": "static"})


@app.command("store-assume", help="Store a delegated profile (RoleArn + SourceProfile).")
def store_assume(ctx: typer.Context) -> None:
    rt = _runtime(ctx)
    profile = _prompt_profile(rt)
    role_arn = typer.prompt("Enter RoleArn").strip()
    source_profile = typer.prompt("Enter SourceProfile").strip()
    with wide_event("store-assume", profile=profile, enabled=rt.settings.log_events):
        save_record(rt.store, profile, delegated_record(role_arn, source_profile))
    _print_json({"kind": "awbus.store.v1", "profile": profile, "type": "delegated"})


@app.command("delete", help="Delete AWS_PROFILE from the keyring after confirmation.")
def delete(ctx: typer.Context) -> None:
    rt = _runtime(ctx)
    profile = rt.settings.profile
    answer = typer.prompt(
        f"Deleting profile (press Enter to delete '{profile}', press anything else to abort)",
        default="",
        show_default=False,
    )
    if str(answer or "").strip():
        _rich_warning(f"delete of profile {profile!r} aborted")
        return
    with wide_event("delete", profile=profile, enabled=rt.settings.log_events):
        rt.store.delete(profile)
    _print_json({"kind": "awbus.delete.v1", "profile": profile})


@app.command("version", help="Print the version.")
def version(ctx: typer.Context) -> None:
    rt = _runtime(ctx)
    typer.echo(f"awbus {rt.version}")


@app.command("help", help="Print usage.")
def help_(ctx: typer.Context) -> None:
    del ctx
    typer.echo(HELP_TEXT)


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        _bootstrap_env()
        runtime = build_runtime(load_settings())
        result = app(args=argv, prog_name="awbus", standalone_mode=False, obj=runtime)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except typer.Abort:
        _rich_error("aborted")
        return 1
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _rich_error(str(e))
        return 2
    except OpError as e:
        _rich_error(str(e))
        return 1
    except AwbusError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
