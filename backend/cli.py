"""
StudyHub CLI.

Operator commands for the account store: bootstrap administrators, cut
sessions, clear login lockouts and inspect the login log.
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

from rest_api.core.container import Container
from rest_api.models import Base, User
from shared.config.constants import AccountStatus, Roles
from shared.security.password import hash_password

app = typer.Typer(
    name="studyhub",
    help="StudyHub account administration CLI",
    add_completion=False,
)
console = Console()


def build_container() -> Container:
    return Container()


def _find_user(container: Container, identifier: str) -> User:
    user = container.users.find_by_identifier(identifier)
    if user is None:
        console.print(f"[red]✗ No account matches '{identifier}'[/red]")
        raise typer.Exit(1)
    return user


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init():
    """Create missing tables."""
    container = build_container()
    Base.metadata.create_all(bind=container.engine)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def purge_codes():
    """Delete expired verification codes."""
    container = build_container()
    removed = container.verification_service.purge_expired()
    console.print(f"[green]✓ Removed {removed} expired codes[/green]")


# =============================================================================
# Account Commands
# =============================================================================

@app.command()
def create_admin(
    username: str = typer.Argument(..., help="Login name"),
    email: str = typer.Argument(..., help="Account email"),
    real_name: str = typer.Option("Administrator", help="Display name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Create an administrator account (registration only creates students)."""
    container = build_container()
    if container.users.username_or_email_taken(username, email):
        console.print("[red]✗ Username or email already registered[/red]")
        raise typer.Exit(1)

    try:
        password_hash = hash_password(password)
    except ValueError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    user = container.users.create(
        User(
            username=username,
            email=email,
            password_hash=password_hash,
            real_name=real_name,
            role=Roles.ADMIN,
            status=AccountStatus.ACTIVE,
            email_verified=True,
        )
    )
    console.print(f"[green]✓ Administrator '{user.username}' created (id {user.id})[/green]")


@app.command()
def set_status(
    identifier: str = typer.Argument(..., help="Username or email"),
    status: str = typer.Argument(..., help="active, inactive or banned"),
):
    """Change an account status."""
    if status not in AccountStatus.ALL:
        console.print(f"[red]✗ Unknown status '{status}'[/red]")
        raise typer.Exit(1)

    container = build_container()
    user = _find_user(container, identifier)
    container.users.update_fields(user.id, {"status": status})
    console.print(f"[green]✓ {user.username} is now {status}[/green]")


@app.command()
def revoke_sessions(
    identifier: str = typer.Argument(..., help="Username or email"),
):
    """Invalidate every token issued to an account so far."""
    container = build_container()
    user = _find_user(container, identifier)
    container.revocations.revoke_user(user.id, container.codec.refresh_ttl_seconds)
    console.print(f"[green]✓ Sessions of {user.username} revoked[/green]")


@app.command()
def unlock_login(
    ip: str = typer.Option(None, help="Client address to unlock"),
    identifier: str = typer.Option(None, help="Username or email to unlock"),
):
    """Reset login attempt counters."""
    if not ip and not identifier:
        console.print("[red]Pass --ip and/or --identifier[/red]")
        raise typer.Exit(1)

    container = build_container()
    container.login_limiter.clear(ip=ip, identifier=identifier)
    console.print("[green]✓ Login counters cleared[/green]")


@app.command()
def login_logs(
    identifier: str = typer.Option(None, help="Only attempts by this account"),
    failed: bool = typer.Option(False, "--failed", help="Only failed attempts"),
    limit: int = typer.Option(20, help="Rows to show"),
):
    """Show recent login attempts."""
    container = build_container()
    user_id = _find_user(container, identifier).id if identifier else None
    entries = container.user_service.list_login_logs(
        user_id=user_id,
        success=False if failed else None,
        limit=limit,
    )

    table = Table(title="Recent logins")
    table.add_column("When", style="cyan")
    table.add_column("User", style="magenta")
    table.add_column("IP")
    table.add_column("Method")
    table.add_column("Result")

    for entry in entries:
        result = "[green]ok[/green]" if entry.success else f"[red]{entry.reason or 'failed'}[/red]"
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(entry.user_id or "-"),
            entry.ip_address,
            entry.method,
            result,
        )

    console.print(table)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8000/api/health/detailed", help="Health endpoint"),
):
    """Check a running API instance."""
    import httpx

    try:
        response = httpx.get(url, timeout=5.0)
    except httpx.HTTPError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        raise typer.Exit(1)

    data = response.json()
    table = Table(title="Service Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Latency", style="yellow")

    for name, component in data.get("dependencies", {}).items():
        latency = component.get("latency_ms")
        table.add_row(name, component["status"], f"{latency:.0f}ms" if latency is not None else "-")

    console.print(table)
    if response.status_code != 200:
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    table = Table(title="StudyHub Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
