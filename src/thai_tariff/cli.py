"""Command-line interface for Thai electricity bill calculation."""

import json
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import catalog
from .calculator import calculate_bill, calculate_plan, envelope
from .config import load_settings
from .errors import TariffError, ValidationError
from .models import BillResult, CalculationClass, Provider, TariffType, VoltageLevel

console = Console()
err_console = Console(stderr=True)

LABELS = {
    "calculatedDemandCharge": "Calculated demand charge",
    "energyCharge": "Energy charge",
    "effectiveDemandCharge": "Effective demand charge",
    "pfCharge": "Power factor charge",
    "serviceCharge": "Service charge",
    "baseTariff": "Base tariff",
    "ftCharge": "FT charge",
    "subTotal": "Subtotal",
    "vat": "VAT",
    "totalBill": "Total bill",
    "grandTotal": "Grand total",
}


def _parse_usage(pairs: tuple[str, ...]) -> dict[str, str]:
    usage = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--usage")
        usage[key.strip()] = value.strip()
    return usage


def _read_payload(input_file) -> dict:
    try:
        return json.load(input_file)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--input")


def _print_result(title: str, result: BillResult, as_json: bool, wrap: bool) -> None:
    if as_json:
        data = envelope(result, 2) if wrap else result.to_dict(2)
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title=title)
    table.add_column("Item", style="cyan")
    table.add_column("Baht", justify="right")
    for key, value in result.to_dict().items():
        if value is None:
            continue
        label = LABELS.get(key, key)
        if key in ("totalBill", "grandTotal"):
            table.add_row(f"[bold]{label}[/bold]", f"[bold]{value:,.2f}[/bold]")
        else:
            table.add_row(label, f"{value:,.2f}")
    console.print(table)


def _fail(ctx: click.Context, error: TariffError) -> None:
    console.print(f"[red]Error: {escape(error.message)}[/red]")
    ctx.exit(2 if isinstance(error, ValidationError) else 1)


@click.group()
@click.option("--log-level", help="Logging level (or set THAI_TARIFF_LOG_LEVEL)")
@click.pass_context
def cli(ctx, log_level):
    """Thai electricity bill calculator for MEA and PEA tariffs."""
    ctx.ensure_object(dict)
    settings = load_settings()
    if log_level:
        settings.log_level = log_level.upper()
    ctx.obj["settings"] = settings

    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@cli.command()
@click.argument("provider")
@click.argument("calculation_type")
@click.option("--tariff", "tariff_type", help="normal, tou or tod")
@click.option("--voltage", "voltage_level", help="Voltage level, e.g. '<12kV'")
@click.option("--ft", "ft_rate", type=float, help="FT rate in satang/kWh")
@click.option("--kvar", "peak_kvar", type=float, help="Peak reactive power (kVAR)")
@click.option(
    "--highest-demand",
    type=float,
    help="Highest demand charge in the last 12 months (baht)",
)
@click.option("--usage", "usage_pairs", multiple=True, help="Usage reading as key=value")
@click.option(
    "--input",
    "input_file",
    type=click.File("r"),
    help="JSON request body ('-' for stdin); replaces the other options",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--envelope", "wrap", is_flag=True, help="Wrap JSON as {success, data}")
@click.pass_context
def calculate(
    ctx,
    provider,
    calculation_type,
    tariff_type,
    voltage_level,
    ft_rate,
    peak_kvar,
    highest_demand,
    usage_pairs,
    input_file,
    as_json,
    wrap,
):
    """Calculate a bill, e.g. `calculate mea type-2 --tariff normal --voltage '<12kV'
    --ft 19.72 --usage total_kwh=500`.
    """
    if input_file:
        payload = _read_payload(input_file)
    else:
        payload = {
            "tariffType": tariff_type,
            "voltageLevel": voltage_level,
            "ftRateSatang": ft_rate,
            "peakKvar": peak_kvar,
            "highestDemandChargeLast12m": highest_demand,
            "usage": _parse_usage(usage_pairs) or None,
        }
        payload = {k: v for k, v in payload.items() if v is not None}

    try:
        result = calculate_bill(
            provider, calculation_type, payload, settings=ctx.obj["settings"]
        )
    except TariffError as e:
        _fail(ctx, e)
        return

    title = f"{provider.upper()} {calculation_type} {payload.get('tariffType', '')}".strip()
    _print_result(title, result, as_json, wrap)


@cli.command()
@click.argument("plan_name")
@click.option(
    "--input",
    "input_file",
    type=click.File("r"),
    required=True,
    help="JSON request body ('-' for stdin)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--envelope", "wrap", is_flag=True, help="Wrap JSON as {success, data}")
@click.pass_context
def plan(ctx, plan_name, input_file, as_json, wrap):
    """Calculate a bill for a tariff plan, e.g. MEA_3.1.3_medium_normal."""
    payload = _read_payload(input_file)
    try:
        result = calculate_plan(plan_name, payload, settings=ctx.obj["settings"])
    except TariffError as e:
        _fail(ctx, e)
        return
    _print_result(plan_name, result, as_json, wrap)


@cli.command()
@click.option("--provider", type=click.Choice([p.value for p in Provider]), help="Filter by provider")
@click.option(
    "--type",
    "calculation_type",
    type=click.Choice([c.value for c in CalculationClass]),
    help="Filter by calculation type",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def plans(ctx, provider, calculation_type, as_json):
    """List available tariff plans."""
    rates = catalog.get_catalog(ctx.obj["settings"].rates_path)
    names = rates.plans(
        Provider(provider) if provider else None,
        CalculationClass(calculation_type) if calculation_type else None,
    )

    if as_json:
        click.echo(json.dumps(names, indent=2))
        return

    if not names:
        console.print("[yellow]No tariff plans found[/yellow]")
        return

    table = Table(title="Tariff Plans")
    table.add_column("Plan", style="cyan")
    table.add_column("Provider")
    table.add_column("Type")
    table.add_column("Tariff")
    table.add_column("Voltage")
    for name in names:
        p, c, t, v = catalog.parse_plan_name(name)
        table.add_row(name, p.value.upper(), c.value, t.value, escape(v.value))
    console.print(table)


@cli.command()
@click.argument("provider", type=click.Choice([p.value for p in Provider]))
@click.argument("calculation_type", type=click.Choice([c.value for c in CalculationClass]))
@click.argument("tariff_type", type=click.Choice([t.value for t in TariffType]))
@click.argument("voltage_level", type=click.Choice([v.value for v in VoltageLevel]))
@click.pass_context
def rates(ctx, provider, calculation_type, tariff_type, voltage_level):
    """Show the rate row for one provider, type, tariff and voltage level."""
    key = (
        Provider(provider),
        CalculationClass(calculation_type),
        TariffType(tariff_type),
        VoltageLevel(voltage_level),
    )
    levels = key[0].voltage_levels_for(key[1])
    if key[3] not in levels:
        allowed = ", ".join(v.value for v in levels)
        raise click.BadParameter(
            f"{provider.upper()} {calculation_type} voltage levels are {allowed}",
            param_hint="VOLTAGE_LEVEL",
        )
    try:
        row = catalog.get_catalog(ctx.obj["settings"].rates_path).lookup(*key)
    except TariffError as e:
        _fail(ctx, e)
        return

    table = Table(title=catalog.plan_name(*key))
    table.add_column("Rate", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Service charge (baht/month)", f"{row.service_charge:.2f}")
    for i, tier in enumerate(row.energy_tiers):
        upper = (
            f"{row.energy_tiers[i + 1].threshold_kwh:g}"
            if i + 1 < len(row.energy_tiers)
            else "∞"
        )
        table.add_row(f"Energy {tier.threshold_kwh:g}-{upper} kWh (baht/kWh)", f"{tier.rate:.4f}")
    if row.tariff_type is TariffType.TOU:
        table.add_row("On-peak energy (baht/kWh)", f"{row.on_peak_energy_rate:.4f}")
        table.add_row("Off-peak energy (baht/kWh)", f"{row.off_peak_energy_rate:.4f}")
    if row.calculation_class.is_demand_billed:
        if row.tariff_type is TariffType.NORMAL:
            table.add_row("Demand (baht/kW)", f"{row.demand_rate:.2f}")
        else:
            table.add_row("On-peak demand (baht/kW)", f"{row.on_peak_demand_rate:.2f}")
        if row.tariff_type is TariffType.TOD:
            table.add_row("Partial-peak demand (baht/kW)", f"{row.partial_peak_demand_rate:.2f}")
            table.add_row("Off-peak demand (baht/kW)", f"{row.off_peak_demand_rate:.2f}")
        table.add_row("Power factor threshold (kVAR/kW)", f"{row.pf_threshold_ratio:.4f}")
        table.add_row("Power factor penalty (baht/kVAR)", f"{row.pf_penalty_rate:.2f}")
        table.add_row("Minimum bill factor", f"{row.minimum_bill_factor:.2f}")
    table.add_row("VAT", f"{row.vat_rate:.0%}")

    console.print(table)


if __name__ == "__main__":
    cli()
