"""
POS command-line interface.

Database setup and a terminal view of the order list for operators.

Usage:
    pos db-init
    pos db-seed
    pos orders --search delivery --view-all
    pos order 42
"""

import sys

import typer
from rich.console import Console
from rich.table import Table

from shared.config.settings import settings

app = typer.Typer(
    name="pos",
    help="Restaurant POS command-line interface",
    add_completion=False,
)
console = Console()


@app.callback()
def main(ctx: typer.Context):
    """Configure logging and bind a correlation id for this run."""
    from shared.config.logging import setup_logging
    from shared.infrastructure.correlation import correlation_scope

    setup_logging()
    ctx.with_resource(correlation_scope(prefix="cli-"))


# =============================================================================
# Database Commands
# =============================================================================


@app.command()
def db_init():
    """Create the database tables."""
    from pos_api.models import Base
    from shared.infrastructure.db import engine, ensure_sqlite_directory

    console.print(f"[blue]Creating tables in: {engine.url.render_as_string(hide_password=True)}[/blue]")
    try:
        ensure_sqlite_directory(settings.database_url)
        Base.metadata.create_all(bind=engine)
        console.print("[green]✓ Tables created[/green]")
    except Exception as e:
        console.print(f"[red]✗ Table creation failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def db_seed(
    force: bool = typer.Option(False, "--force", "-f", help="Seed even in production"),
):
    """Seed the database with the demo catalog."""
    from pos_api.seed import seed
    from shared.infrastructure.db import get_db_context

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    try:
        with get_db_context() as db:
            inserted = seed(db)
    except Exception as e:
        console.print(f"[red]✗ Seeding failed: {e}[/red]")
        raise typer.Exit(1)

    if inserted:
        console.print("[green]✓ Demo catalog seeded[/green]")
    else:
        console.print("[yellow]Database already seeded[/yellow]")


# =============================================================================
# Order Commands
# =============================================================================


@app.command()
def orders(
    search: str = typer.Option(None, "--search", "-s", help="Filter by id, type, status, phone or address"),
    view_all: bool = typer.Option(False, "--view-all", "-a", help="Include placed orders"),
):
    """Show the grouped order list."""
    from pos_api.services.domain import OrderAggregateService
    from shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        groups = OrderAggregateService(db).query_orders(search=search, view_all=view_all)

    if not groups:
        console.print("[yellow]No orders[/yellow]")
        return

    for group in groups:
        table = Table(title=group.label)
        table.add_column("", style="green")
        table.add_column("Order", style="cyan")
        table.add_column("Type")
        table.add_column("Status")
        table.add_column("Customer")
        table.add_column("Address")
        table.add_column("Items", justify="right")
        table.add_column("Total", justify="right", style="green")

        for order in group.orders:
            table.add_row(
                "●" if order.is_selected else "",
                str(order.id),
                order.order_type.value,
                order.order_status,
                order.customer_phone or "-",
                order.address_short_name or order.address_name or "-",
                str(sum(line.quantity for line in order.lines)),
                str(order.price.total),
            )
        console.print(table)


@app.command()
def order(order_id: int = typer.Argument(..., help="Order id")):
    """Show one order with its lines and price."""
    from pos_api.services.domain import OrderAggregateService
    from shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        aggregate = OrderAggregateService(db).get_order(order_id)

    if aggregate is None:
        console.print(f"[red]Order {order_id} not found[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Order {aggregate.id} ({aggregate.order_type.value}, {aggregate.order_status})")
    table.add_column("Product", style="cyan")
    table.add_column("Qty", justify="right")
    table.add_column("Unit", justify="right")
    table.add_column("Line", justify="right", style="green")
    for line in aggregate.lines:
        table.add_row(line.name, str(line.quantity), str(line.unit_price), str(line.line_total))
    console.print(table)

    console.print(f"Subtotal: {aggregate.price.subtotal}")
    console.print(f"Discount: {aggregate.price.discount}")
    console.print(f"[bold]Total: {aggregate.price.total}[/bold]")


# =============================================================================
# Health Commands
# =============================================================================


@app.command()
def health():
    """Check database and Redis connectivity."""
    import time

    from sqlalchemy import text

    from shared.infrastructure.db import SessionLocal

    table = Table(title="Service Health")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Response Time", style="yellow")

    start = time.time()
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        table.add_row("Database", "✓ Healthy", f"{(time.time() - start) * 1000:.0f}ms")
    except Exception as e:
        table.add_row("Database", f"✗ {type(e).__name__}", "-")

    if settings.redis_url:
        from shared.infrastructure.events import get_redis_sync_client

        start = time.time()
        try:
            get_redis_sync_client().ping()
            table.add_row("Redis", "✓ Healthy", f"{(time.time() - start) * 1000:.0f}ms")
        except Exception as e:
            table.add_row("Redis", f"✗ {type(e).__name__}", "-")
    else:
        table.add_row("Redis", "not configured", "-")

    console.print(table)


@app.command()
def version():
    """Show version information."""
    table = Table(title="POS Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
