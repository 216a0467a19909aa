from dataclasses import dataclass, field
from pathlib import Path
import json
import stat

import typer
from google.oauth2.credentials import Credentials

from ..access import check_file_permissions, validate_credential_path
from ..errors import CredentialPathError
from .common import AppContext, get_context, handle_errors

app = typer.Typer(help="Check and show the effective configuration.", no_args_is_help=True)

OK = "✓"
FAIL = "✗"
WARN = "⚠"
INFO = "ℹ"


@dataclass
class Report():
    """Findings of 'config validate', printed section by section."""
    lines: list[str] = field(default_factory=list)
    errors: int = field(default=0)
    warnings: int = field(default=0)

    def section(self, title: str) -> None:
        if self.lines:
            self.lines.append("")
        self.lines.append(title)

    def add(self, mark: str, text: str) -> None:
        if mark == FAIL:
            self.errors += 1
        elif mark == WARN:
            self.warnings += 1
        self.lines.append(f"  {mark} {text}")


def _check_permissions(report: Report, path: Path, what: str) -> None:
    report.add(OK, f"File permissions: {stat.filemode(path.stat().st_mode)}")
    if check_file_permissions(path):
        report.add(WARN, f"Warning: {what} is readable by others (consider: chmod 600)")


def validate_configuration(app_ctx: AppContext) -> Report:
    settings = app_ctx.settings
    report = Report()

    report.section("Configuration File:")
    if settings.config_file:
        report.add(OK, f"Using config file: {settings.config_file}")
        _check_permissions(report, settings.config_file, "config file")
    else:
        report.add(INFO, "No config file in use (using flags/env vars)")

    report.section("Domain Configuration:")
    if not settings.domain:
        report.add(FAIL, "Domain not configured")
        report.lines.append("    Set via: --domain flag, GWSADMIN_DOMAIN env var, or config file")
    elif "." not in settings.domain:
        report.add(WARN, f"Warning: Domain '{settings.domain}' may be invalid (no TLD)")
    else:
        report.add(OK, f"Domain: {settings.domain}")

    report.section("Client Secret File:")
    secret = settings.client_secret
    if not secret.exists():
        report.add(FAIL, f"Client secret file not found: {secret}")
    else:
        report.add(OK, f"Client secret file exists: {secret}")
        _check_permissions(report, secret, "client secret file")
    try:
        validate_credential_path(secret)
        report.add(OK, "Client secret file path is valid")
    except CredentialPathError as e:
        report.add(FAIL, f"Invalid client secret file path: {e.message}")

    report.section("Token File:")
    token = settings.token_file
    report.add(INFO, f"Token file path: {token}")
    if not token.exists():
        report.add(INFO, "Token file does not exist yet (will be created by 'gwsadmin init')")
    else:
        report.add(OK, "Token file exists")
        _check_permissions(report, token, "token file")
        try:
            with open(token, "r", encoding="utf-8") as f:
                creds = Credentials.from_authorized_user_info(json.load(f))
            if creds.valid or creds.refresh_token:
                report.add(OK, "Token is valid")
            else:
                report.add(WARN, "Warning: Token may be expired (re-authentication may be required)")
        except (OSError, ValueError) as e:
            report.add(WARN, f"Warning: Token file is invalid ({e}), run 'gwsadmin init --force'")

    report.section("Validation Summary:")
    if report.errors:
        report.add(FAIL, "Configuration has errors that must be fixed")
    elif report.warnings:
        report.lines.append(f"  {WARN} Configuration is valid but has warnings")
        report.lines.append(f"  {OK} gwsadmin should work, but consider addressing warnings above")
    else:
        report.lines.append(f"  {OK} Configuration is valid with no errors or warnings")
    return report


@app.command("validate")
@handle_errors("config validate")
def validate(ctx: typer.Context) -> None:
    """Check the config file, domain and credential files.  Exits 1 on errors."""
    app_ctx = get_context(ctx)
    app_ctx.note("Validating gwsadmin configuration...\n")
    report = validate_configuration(app_ctx)
    typer.echo("\n".join(report.lines))
    if report.errors:
        raise typer.Exit(code=1)


@app.command("show")
@handle_errors("config show")
def show(ctx: typer.Context) -> None:
    """Print the settings in effect after config file, environment and flags."""
    app_ctx = get_context(ctx)
    app_ctx.echo(app_ctx.settings.to_dict())
