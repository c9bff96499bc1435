"""Command-line interface for the credit engine.

This module uses the ``click`` library to implement a multi-command
interface. Users can generate payment plans from loan terms, print their
totals, and inspect the live status, statement, receipt or provisioning of
credits stored as JSON documents. Plans can be exported to JSON/CSV files.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click

from .config import EngineConfig
from .data_models import Credit, LoanTerms, PaymentFrequency
from .engine import generate_payment_schedule, summarize_schedule
from .exceptions import CreditEngineError
from .formatter import print_provisions, print_schedule, print_statement, print_status, print_summary
from .logging_config import setup_logging
from .receipt import RECEIPT_COPIES, build_receipt, render_receipt_text
from .risk import build_provisioning_report, summarize_provisions
from .serialization import credit_from_dict, export_schedule_csv, export_schedule_json
from .statement import StatementBuilder
from .status import StatusEngine
from .utils import parse_holidays, parse_iso_date, to_decimal

FREQUENCY_CHOICES = [f.value for f in PaymentFrequency] + ["daily", "weekly", "biweekly", "semimonthly"]


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("5000") and shorthand with ``k``/``m`` suffixes
    (e.g., "5k" meaning 5_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return to_decimal(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse a monthly rate given as "5" or "5%"."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return to_decimal(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def build_terms_from_options(
    principal: str,
    rate: str,
    term: str,
    frequency: str,
    start_date: str,
    holiday: Tuple[str, ...],
) -> LoanTerms:
    try:
        start = parse_iso_date(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    try:
        holidays = parse_holidays(holiday)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    try:
        term_value = to_decimal(term)
    except ValueError:
        raise click.BadParameter(f"Invalid term: {term}")
    return LoanTerms(
        principal=parse_amount(principal),
        monthly_interest_rate=parse_percent(rate),
        term_months=term_value,
        payment_frequency=PaymentFrequency.parse(frequency),
        start_date=start,
        holidays=holidays,
    )


def load_json(path: str) -> Any:
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"{path} is not valid JSON: {exc}")


def load_credit(path: str) -> Credit:
    try:
        return credit_from_dict(load_json(path))
    except (KeyError, ValueError) as exc:
        raise click.BadParameter(f"Invalid credit document {path}: {exc}")


def load_credits(path: str) -> List[Credit]:
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("credits", [data])
    try:
        return [credit_from_dict(item) for item in data]
    except (KeyError, ValueError) as exc:
        raise click.BadParameter(f"Invalid credit document {path}: {exc}")


def terms_options(func):
    """Options shared by the plan-generating commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Amount lent"),
        click.option("--rate", "-r", "rate", required=True, help="Flat monthly interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, help="Term in months (may be fractional)"),
        click.option(
            "--frequency",
            "-f",
            "frequency",
            type=click.Choice(FREQUENCY_CHOICES, case_sensitive=False),
            default=PaymentFrequency.WEEKLY.value,
            show_default=True,
            help="Payment frequency",
        ),
        click.option("--start-date", "-s", "start_date", required=True, help="First installment date (YYYY-MM-DD)"),
        click.option("--holiday", "holiday", multiple=True, help="Holiday date (YYYY-MM-DD); repeatable"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _engine_config(ctx: click.Context) -> EngineConfig:
    return ctx.find_object(EngineConfig) or EngineConfig()


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Payment plans and credit status for flat-rate microfinance credits."""
    try:
        config = EngineConfig.from_env()
    except CreditEngineError as exc:
        raise click.ClickException(str(exc))
    setup_logging(config.log_level, config.log_format)
    ctx.obj = config


@cli.command()
@terms_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_context
def schedule(
    ctx: click.Context,
    principal: str,
    rate: str,
    term: str,
    frequency: str,
    start_date: str,
    holiday: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Generate and print the full payment plan."""
    terms = build_terms_from_options(principal, rate, term, frequency, start_date, holiday)
    plan = generate_payment_schedule(terms, max_iterations=_engine_config(ctx).max_adjust_iterations)
    if plan is None:
        raise click.ClickException("Could not generate a payment plan for these terms")
    summary_data = summarize_schedule(plan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_schedule_json(path, plan, summary_data)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_schedule_csv(path, plan)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_summary(summary_data)
        print_schedule(plan.installments)


@cli.command()
@terms_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_context
def summary(
    ctx: click.Context,
    principal: str,
    rate: str,
    term: str,
    frequency: str,
    start_date: str,
    holiday: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Print only the totals of a payment plan."""
    terms = build_terms_from_options(principal, rate, term, frequency, start_date, holiday)
    plan = generate_payment_schedule(terms, max_iterations=_engine_config(ctx).max_adjust_iterations)
    if plan is None:
        raise click.ClickException("Could not generate a payment plan for these terms")
    summary_data = summarize_schedule(plan)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


@cli.command()
@click.argument("credit_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Business date to evaluate (YYYY-MM-DD); defaults to today")
@click.pass_context
def status(ctx: click.Context, credit_json: str, as_of: Optional[str]) -> None:
    """Print the live status of a credit stored as JSON."""
    config = _engine_config(ctx)
    credit = load_credit(credit_json)
    engine = StatusEngine(config.clock(), config.balance_epsilon)
    print_status(engine.status(credit, _as_of(as_of)))


@cli.command()
@click.argument("credit_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Business date to evaluate (YYYY-MM-DD); defaults to today")
@click.pass_context
def statement(ctx: click.Context, credit_json: str, as_of: Optional[str]) -> None:
    """Print the per-installment and per-payment statement of a credit."""
    config = _engine_config(ctx)
    credit = load_credit(credit_json)
    builder = StatementBuilder(config.clock(), config.balance_epsilon)
    print_statement(builder.statement(credit, _as_of(as_of)))


@cli.command()
@click.argument("credit_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("payment_id")
@click.option(
    "--copy", "copy_type", type=click.Choice(RECEIPT_COPIES, case_sensitive=False), default="CLIENTE", help="Receipt copy"
)
@click.option("--reprint", is_flag=True, help="Mark the receipt as a reprint")
@click.pass_context
def receipt(ctx: click.Context, credit_json: str, payment_id: str, copy_type: str, reprint: bool) -> None:
    """Print the receipt of one registered payment."""
    config = _engine_config(ctx)
    credit = load_credit(credit_json)
    engine = StatusEngine(config.clock(), config.balance_epsilon)
    try:
        figures = build_receipt(credit, payment_id, engine)
    except CreditEngineError as exc:
        raise click.ClickException(str(exc))
    click.echo(render_receipt_text(figures, copy_type=copy_type, reprint=reprint), nl=False)


@cli.command()
@click.argument("credits_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Business date to evaluate (YYYY-MM-DD); defaults to today")
@click.pass_context
def provisions(ctx: click.Context, credits_json: str, as_of: Optional[str]) -> None:
    """Print the provisioning required per risk category."""
    config = _engine_config(ctx)
    engine = StatusEngine(config.clock(), config.balance_epsilon)
    lines = build_provisioning_report(load_credits(credits_json), engine, _as_of(as_of))
    print_provisions(summarize_provisions(lines))


def _as_of(value: Optional[str]):
    if value is None:
        return None
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


if __name__ == "__main__":
    cli()
