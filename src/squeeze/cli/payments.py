"""Payment method CLI commands."""

from __future__ import annotations

import click

from squeeze.cli.main import JsonGroup, SqueezeContext, pass_context
from squeeze.core.exceptions import NotFoundError
from squeeze.models.payment_method import PAYMENT_METHOD_TYPES


@click.group(cls=JsonGroup)
@pass_context
def payments(ctx: SqueezeContext) -> None:
    """Manage payment methods (list, add, edit, delete)."""
    pass


@payments.command("list")
@pass_context
def payments_list(ctx: SqueezeContext) -> None:
    """List payment methods."""
    from squeeze.services.payment_method_service import PaymentMethodService

    svc = PaymentMethodService(ctx.get_db())
    methods = svc.list()

    if not methods and not ctx.json_mode:
        ctx.formatter.info("No payment methods. Use 'squeeze payments add' to add one.")
        return

    ctx.formatter.table(
        title="Payment Methods",
        columns=[("Name", "bold"), ("Type", ""), ("Used By", "cyan"), ("ID", "dim")],
        rows=[[m.display_name, m.method_type, str(svc.usage_count(m.id)), m.id] for m in methods],
        data_for_json=[m.model_dump() for m in methods],
    )


@payments.command("add")
@click.option("--name", prompt="Name", help="Display name, e.g. 'Visa'.")
@click.option("--type", "method_type", type=click.Choice(PAYMENT_METHOD_TYPES), default="credit_card")
@click.option("--last-four", default=None, help="Last four digits.")
@click.option("--color", default=None, help="Display color.")
@pass_context
def payments_add(ctx: SqueezeContext, name: str, method_type: str, last_four: str | None, color: str | None) -> None:
    """Add a payment method."""
    from squeeze.services.payment_method_service import PaymentMethodService

    pm = PaymentMethodService(ctx.get_db()).add(name, method_type, last_four, color)
    if ctx.json_mode:
        ctx.formatter.json(pm.model_dump())
    else:
        ctx.formatter.success(f"Added payment method: {pm.display_name} ({pm.id})")


@payments.command("edit")
@click.argument("pm_id")
@click.option("--name", default=None)
@click.option("--type", "method_type", type=click.Choice(PAYMENT_METHOD_TYPES), default=None)
@click.option("--last-four", default=None)
@click.option("--color", default=None)
@pass_context
def payments_edit(ctx: SqueezeContext, pm_id: str, **opts: str | None) -> None:
    """Edit a payment method."""
    from squeeze.services.payment_method_service import PaymentMethodService

    changes = {k: v for k, v in opts.items() if v is not None}
    pm = PaymentMethodService(ctx.get_db()).update(pm_id, **changes)
    if pm is None:
        raise NotFoundError(f"Payment method not found: {pm_id}")
    if ctx.json_mode:
        ctx.formatter.json(pm.model_dump())
    else:
        ctx.formatter.success(f"Updated {pm.display_name}.")


@payments.command("delete")
@click.argument("pm_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@pass_context
def payments_delete(ctx: SqueezeContext, pm_id: str, yes: bool) -> None:
    """Delete a payment method; subscriptions using it keep going without one."""
    from squeeze.services.payment_method_service import PaymentMethodService

    svc = PaymentMethodService(ctx.get_db())
    pm = svc.get(pm_id)
    if not ctx.json_mode and not yes:
        click.confirm(f"Delete '{pm.display_name}' (used by {svc.usage_count(pm.id)})?", abort=True)

    svc.delete(pm.id)
    if ctx.json_mode:
        ctx.formatter.json({"deleted": pm.id})
    else:
        ctx.formatter.success(f"Deleted payment method: {pm.display_name}")
