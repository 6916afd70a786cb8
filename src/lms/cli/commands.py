"""CLI commands for the LMS.

Commands:
- init-db: create the database schema and default settings
- create-user: create an account (the way to seed the first super admin)
- list-users / list-exams: inspect accounts and examinations
- report: print instructor analytics for a date range
- serve: run the Web API with uvicorn
"""

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lms.config.app_config import load_app_config
from lms.core.accounts import create_account
from lms.core.errors import LMSError
from lms.core.reports import DATE_RANGE_DAYS, build_report
from lms.db.database import get_db_path, init_db
from lms.db.exams_repository import list_examinations, list_questions
from lms.db.users_repository import ROLES, list_users

app = typer.Typer(
    name="lms",
    help="Learning management system: examinations, grading and reports.",
    no_args_is_help=True,
)

console = Console()


def _open_db() -> None:
    """Point the database layer at the configured database file."""
    init_db(load_app_config().database.resolve_path())


@app.command(name="init-db")
def init_database() -> None:
    """Create the database schema and default settings."""
    _open_db()
    console.print(f"[green]✓ Database ready[/green] [dim]{get_db_path()}[/dim]")


@app.command(name="create-user")
def create_user(
    username: str = typer.Argument(..., help="Login name"),
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    full_name: str = typer.Option(..., "--name", "-n", help="Full name"),
    role: str = typer.Option("student", "--role", "-r", help="super_admin, admin or student"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True,
        help="Password (prompted when omitted)",
    ),
) -> None:
    """Create an account."""
    if role not in ROLES:
        console.print(f"[red]✗ Invalid role '{role}'. Use one of: {', '.join(ROLES)}[/red]")
        raise typer.Exit(code=1)

    _open_db()
    try:
        user = create_account(None, username, email, full_name, role, password)
    except LMSError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Created {user.role} '{user.username}'[/green]")
    console.print(f"  [dim]id:[/dim] {user.id}")


@app.command(name="list-users")
def list_accounts(
    role: str | None = typer.Option(None, "--role", "-r", help="Only this role"),
) -> None:
    """List accounts."""
    _open_db()
    users = list_users(role=role)
    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Username", style="cyan")
    table.add_column("Full name")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Last login", style="dim")
    for u in users:
        table.add_row(u.username, u.full_name, u.email, u.role, u.last_login or "-")
    console.print(table)


@app.command(name="list-exams")
def list_exams(
    active_only: bool = typer.Option(False, "--active", help="Only active examinations"),
) -> None:
    """List examinations."""
    _open_db()
    exams = list_examinations(active_only=active_only)
    if not exams:
        console.print("[yellow]No examinations found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Title", style="cyan")
    table.add_column("Window")
    table.add_column("Minutes", justify="right")
    table.add_column("Questions", justify="right")
    table.add_column("Active", justify="center")
    for e in exams:
        table.add_row(
            e.title,
            f"{e.scheduled_start[:16]} → {e.scheduled_end[:16]}",
            str(e.duration_minutes),
            str(len(list_questions(e.id))),
            "[green]✓[/green]" if e.is_active else "[red]✗[/red]",
        )
    console.print(table)


@app.command()
def report(
    date_range: str = typer.Option("30d", "--range", help="7d, 30d, 3m, 6m, 1y or all"),
) -> None:
    """Print instructor analytics."""
    if date_range not in DATE_RANGE_DAYS:
        console.print(f"[red]✗ Unknown range '{date_range}'. Use one of: {', '.join(DATE_RANGE_DAYS)}[/red]")
        raise typer.Exit(code=1)

    _open_db()
    data = build_report(date_range)

    header = (
        f"Exams: {data.total_exams} ({data.active_exams} active) | "
        f"Students: {data.total_students} | Submissions: {data.total_submissions}\n"
        f"Average score: {data.average_score}% | Completion rate: {data.completion_rate}%"
    )
    console.print(Panel(header, title=f"[bold]Report ({date_range})[/bold]", expand=False))

    if data.exam_performance:
        table = Table(title="Exam performance", show_header=True, header_style="bold")
        table.add_column("Exam", style="cyan")
        table.add_column("Submissions", justify="right")
        table.add_column("Average", justify="right")
        for row in data.exam_performance:
            table.add_row(row.name, str(row.total_submissions), f"{row.average_score:.0f}%")
        console.print(table)

    if data.grade_distribution and data.grade_distribution.total:
        dist = data.grade_distribution
        grades = "  ".join(f"{b.grade}: {b.count}" for b in dist.buckets)
        console.print(f"\n[bold]Grades[/bold] {grades}")
        console.print(
            f"  [dim]passing:[/dim] {dist.passing_rate:.0f}%  "
            f"[dim]excellence:[/dim] {dist.excellence_rate:.0f}%"
        )


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API."""
    server = load_app_config().server
    uvicorn.run(
        "lms.web.api:app",
        host=host or server.host,
        port=port or server.port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
