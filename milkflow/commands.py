# milkflow/commands.py
"""
Flask CLI commands. Used as: flask <command>
"""
from __future__ import annotations

import json
from datetime import date

import click

from milkflow.errors import ValidationError
from milkflow.extensions import db
from milkflow.models import Role, UserRole
from milkflow.services import identity
from milkflow.services.daily_summary import send_daily_summaries


def register_cli_commands(app):
    @app.cli.command("create-admin")
    @click.option("--phone", prompt="Admin phone", help="Phone number used to log in")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password")
    @click.option("--name", "full_name", prompt="Full name", help="Display name")
    def create_admin_command(phone, password, full_name):
        """Create an admin identity, or grant admin to an existing one."""
        existing = identity.find_user_by_phone(phone)
        if existing is not None:
            has_admin = any(r.role == Role.ADMIN.value for r in existing.roles)
            if has_admin:
                click.echo(f"User {existing.id} is already an admin.")
                return
            db.session.add(UserRole(user_id=existing.id, role=Role.ADMIN.value))
            db.session.commit()
            click.echo(f"Granted admin to existing user {existing.id}.")
            return

        try:
            user, _ = identity.sign_up(
                {"phone": phone, "password": password, "full_name": full_name, "role": Role.ADMIN.value}
            )
        except ValidationError as exc:
            for field, msg in exc.field_errors.items():
                click.echo(f"{field}: {msg}", err=True)
            raise SystemExit(1)

        click.echo(f"Admin {user.email} created.")

    @app.cli.command("send-daily-summary")
    @click.option("--date", "day", default=None, help="YYYY-MM-DD (defaults to today in APP_TIMEZONE)")
    def send_daily_summary_command(day):
        """Send today's collection summary SMS to every active supplier."""
        try:
            target = date.fromisoformat(day) if day else None
        except ValueError:
            raise click.BadParameter("Date must be in YYYY-MM-DD format", param_hint="--date")

        run = send_daily_summaries(target)
        click.echo(json.dumps(run.to_dict(), indent=2))

    @app.cli.command("relink-suppliers")
    def relink_suppliers_command():
        """Link supplier rows to identities with the same phone that have none yet."""
        count = identity.relink_all_suppliers()
        click.echo(f"Linked {count} supplier(s).")
