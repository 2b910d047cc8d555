#!/usr/bin/env python3
"""
Purchasing — CLI entry point.

Usage examples:
  python main.py check                              # Verify the row source is reachable
  python main.py orders                             # List all purchase orders
  python main.py orders --status pending            # Only orders awaiting approval
  python main.py orders --search acme               # Search order no. / supplier / product
  python main.py show PO-1                          # Lines of one order
  python main.py timeline PO-1                      # Tracking timeline
  python main.py approve PO-1 --actor "Jane"        # Approve (session only, not saved)
  python main.py reject PO-1 --reason "Over budget"
  python main.py export --output orders.csv         # CSV export of all lines
  python main.py settle --paid "Rent=250000" --credited "Ad refund=30000"

  python main.py --csv data/purchase_orders.csv orders   # Read a local CSV instead
"""
import logging
import sys
from pathlib import Path

import click

from config import Config
from models.purchase_order import OrderStatus
from purchasing.aggregator import status_counts
from purchasing.errors import PurchasingError
from purchasing.lifecycle import allowed_targets
from purchasing.store import PurchasingStore


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_store(ctx: click.Context) -> PurchasingStore:
    """Build the store from the CLI context and load a snapshot."""
    config = Config()
    if ctx.obj.get("csv"):
        config.po_csv = Path(ctx.obj["csv"])
    store = PurchasingStore(config=config, confirm=ctx.obj["confirm"])
    try:
        store.refresh()
    except PurchasingError as exc:
        _fail(f"Could not load purchase orders: {exc}")
    return store


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _error_text(exc: Exception) -> str:
    # KeyError str() wraps the message in quotes
    return str(exc.args[0]) if isinstance(exc, KeyError) and exc.args else str(exc)


def _money(amount) -> str:
    prefix = click.get_current_context().obj.get("currency", "")
    return f"{prefix}{amount:,.2f}"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--csv", "csv_path", default=None, type=click.Path(dir_okay=False),
              help="Read purchase orders from a CSV file instead of the sheet service")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, csv_path: str | None, yes: bool) -> None:
    """Purchasing — purchase order lifecycle and settlement reconciliation."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["csv"] = csv_path
    ctx.obj["currency"] = Config().currency_prefix
    ctx.obj["confirm"] = (lambda message: True) if yes else (
        lambda message: click.confirm(message, default=False)
    )
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify that purchase-order rows can be loaded."""
    config = Config()
    if ctx.obj.get("csv"):
        config.po_csv = Path(ctx.obj["csv"])
    store = PurchasingStore(config=config)

    click.echo("\n=== Purchasing Setup Check ===\n")
    click.echo(f"  Source:           {store.source.name}")
    try:
        orders = store.refresh()
    except PurchasingError as exc:
        click.echo(f"  Rows:             ✗ NOT loaded ({exc})")
        if config.po_csv is None:
            click.echo("  → Check SHEETS_API_URL and PO_SHEET_NAME in your .env")
        click.echo()
        sys.exit(1)

    click.echo(f"  Lines:            ✓ {len(store.lines)} loaded")
    click.echo(f"  Orders:           {len(orders)}")
    click.echo(f"  Event log:        {'on' if config.record_transitions else 'off (derived timelines)'}")
    click.echo()


# --------------------------------------------------------------------
# orders / show / timeline
# --------------------------------------------------------------------

@cli.command()
@click.option("--status", "-s", default="all",
              type=click.Choice(["all"] + [s.value for s in OrderStatus]),
              help="Only show orders in this status")
@click.option("--search", "-q", default="", help="Search order number, supplier or product")
@click.pass_context
def orders(ctx: click.Context, status: str, search: str) -> None:
    """List purchase orders with item counts and totals."""
    store = _load_store(ctx)
    found = store.find_orders(status=status, search=search)

    if not found:
        click.echo("No matching purchase orders.")
        return

    click.echo()
    for order in found.values():
        click.echo(
            f"  {order.order_number:<14} {order.supplier[:28]:<28} {str(order.order_date):<12} "
            f"{order.status.value:<10} {order.item_count:>3} items  {_money(order.total_amount):>18}"
        )

    counts = status_counts(store.orders)
    summary = ", ".join(f"{s.value} {n}" for s, n in counts.items() if n)
    click.echo(f"\n  {len(found)} of {len(store.orders)} orders  ({summary})\n")


@cli.command()
@click.argument("order_number")
@click.pass_context
def show(ctx: click.Context, order_number: str) -> None:
    """Show the lines of one purchase order."""
    store = _load_store(ctx)
    try:
        order = store.order(order_number)
    except KeyError as exc:
        _fail(_error_text(exc))

    click.echo()
    click.echo(f"  Order:       {order.order_number}")
    click.echo(f"  Supplier:    {order.supplier}")
    click.echo(f"  Ordered:     {order.order_date}")
    click.echo(f"  Expected:    {order.expected_delivery}")
    click.echo(f"  Status:      {order.status.value}")
    next_steps = ", ".join(s.value for s in allowed_targets(order.status)) or "(terminal)"
    click.echo(f"  Next:        {next_steps}")
    click.echo()
    for line in order.lines:
        click.echo(
            f"    {line.product[:30]:<30} {line.quantity:>6} x {_money(line.unit_price):>14} "
            f"= {_money(line.total):>16}"
        )
    click.echo(f"\n  Total ({order.item_count} items): {_money(order.total_amount)}\n")


@cli.command()
@click.argument("order_number")
@click.pass_context
def timeline(ctx: click.Context, order_number: str) -> None:
    """Show the tracking timeline of one purchase order."""
    store = _load_store(ctx)
    try:
        events = store.timeline(order_number)
    except KeyError as exc:
        _fail(_error_text(exc))

    click.echo()
    for event in events:
        click.echo(f"  {str(event.timestamp):<12} {event.status_label:<10} {event.description}  ({event.actor})")
    click.echo()


# --------------------------------------------------------------------
# approve / reject
# --------------------------------------------------------------------

@cli.command()
@click.argument("order_number")
@click.option("--actor", "-a", default="Manager", help="Name recorded as approver")
@click.pass_context
def approve(ctx: click.Context, order_number: str, actor: str) -> None:
    """Approve a pending purchase order (local session only)."""
    store = _load_store(ctx)
    try:
        updated = store.approve(order_number, actor)
    except (PurchasingError, KeyError) as exc:
        _fail(_error_text(exc))
    if updated is None:
        click.echo("Cancelled.")
        return
    click.secho(f"Purchase order #{order_number} has been approved by {actor}.", fg="green")


@cli.command()
@click.argument("order_number")
@click.option("--reason", "-r", required=True, help="Why the order is rejected")
@click.option("--actor", "-a", default="Manager", help="Name recorded for the rejection")
@click.pass_context
def reject(ctx: click.Context, order_number: str, reason: str, actor: str) -> None:
    """Reject a pending purchase order (local session only)."""
    store = _load_store(ctx)
    try:
        updated = store.reject(order_number, reason, actor=actor)
    except (PurchasingError, KeyError) as exc:
        _fail(_error_text(exc))
    if updated is None:
        click.echo("Cancelled.")
        return
    click.secho(f"Purchase order #{order_number} has been rejected: {updated.rejection_reason}", fg="yellow")


# --------------------------------------------------------------------
# export command
# --------------------------------------------------------------------

@cli.command()
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False),
              help="CSV file to write (default: EXPORT_DIR/purchase_orders.csv)")
@click.pass_context
def export(ctx: click.Context, output: str | None) -> None:
    """Export all purchase lines as CSV."""
    store = _load_store(ctx)
    path = store.write_csv(output)
    click.echo(f"Exported {len(store.lines)} lines to {path}")


# --------------------------------------------------------------------
# settle command
# --------------------------------------------------------------------

def _parse_pairs(values: tuple[str, ...]) -> list[tuple[str, str]]:
    pairs = []
    for raw in values:
        description, sep, amount = raw.rpartition("=")
        if not sep:
            raise click.BadParameter(f"expected DESCRIPTION=AMOUNT, got '{raw}'")
        pairs.append((description, amount))
    return pairs


@cli.command()
@click.option("--paid", multiple=True, help="Paid entry as DESCRIPTION=AMOUNT (repeatable)")
@click.option("--credited", multiple=True, help="Credited entry as DESCRIPTION=AMOUNT (repeatable)")
@click.option("--seed", multiple=True, help="Seed a paid entry from an order's first line (repeatable)")
@click.pass_context
def settle(ctx: click.Context, paid: tuple[str, ...], credited: tuple[str, ...], seed: tuple[str, ...]) -> None:
    """Build a settlement ledger and print the net settlement."""
    if seed:
        store = _load_store(ctx)
    else:
        store = PurchasingStore(source=_NoRows(), config=Config())

    try:
        for order_number in seed:
            store.seed_settlement(order_number)
        for description, amount in _parse_pairs(paid):
            store.add_settlement_entry(description, amount, "paid")
        for description, amount in _parse_pairs(credited):
            store.add_settlement_entry(description, amount, "credited")
    except (PurchasingError, KeyError) as exc:
        _fail(_error_text(exc))

    ledger = store.ledger
    click.echo()
    for entry in ledger:
        sign = "+" if entry.status.value == "paid" else "-"
        ref = f"  [{entry.reference}]" if entry.reference else ""
        click.echo(f"  {entry.date}  {sign} {_money(entry.amount):>18}  {entry.description}{ref}")
    click.echo()
    click.echo(f"  Total paid:      {_money(ledger.total_paid)}")
    click.echo(f"  Total credited:  {_money(ledger.total_credited)}")
    click.echo(f"  Net settlement:  {_money(ledger.net_settlement)}")
    click.echo()


class _NoRows:
    """Row source for ledger-only sessions."""
    name = "none"

    def fetch_rows(self) -> list[list[str]]:
        return []


if __name__ == "__main__":
    cli()
