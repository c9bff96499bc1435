import os
from uuid import uuid4

import click
from flask import Flask, Response, abort, redirect, render_template, request, url_for

from credit_engine.config import EngineConfig
from credit_engine.data_models import PaymentFrequency, RegisteredPayment
from credit_engine.engine import generate_payment_schedule, summarize_schedule
from credit_engine.exceptions import CreditEngineError, CreditNotFoundError
from credit_engine.logging_config import get_logger, setup_logging
from credit_engine.main import build_terms_from_options, parse_amount
from credit_engine.receipt import RECEIPT_COPIES, build_receipt, render_receipt_text
from credit_engine.risk import PROVISION_RULES
from credit_engine.statement import StatementBuilder
from credit_engine.utils import parse_iso_date
from credit_engine_web.credit_store import CreditStore, create_store_from_env

logger = get_logger(__name__)

FREQUENCY_OPTIONS = [f.value for f in PaymentFrequency]
VOID_ACTIONS = ("request_void", "approve_void", "reject_void")


def parse_form_list(value: str) -> list[str]:
    """Parse a comma or whitespace separated list of entries from a form field.

    Returns a list of trimmed strings, skipping any empty entries.
    """
    if not value:
        return []
    parts = [p.strip() for p in value.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def _form_to_terms(form, holidays):
    holiday_list = parse_form_list(form.get("holidays", "")) + [d.isoformat() for d in holidays]
    return build_terms_from_options(
        form.get("principal", "").strip(),
        form.get("rate", "").strip(),
        form.get("term", "").strip(),
        form.get("frequency", PaymentFrequency.WEEKLY.value),
        form.get("start_date", "").strip(),
        tuple(holiday_list),
    )


def _as_of_arg():
    value = request.args.get("as_of", "").strip()
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        abort(400, description=f"Invalid as_of date: {value}")


def create_app(store: CreditStore | None = None, config: EngineConfig | None = None) -> Flask:
    config = config or EngineConfig.from_env()
    store = store or create_store_from_env(config=config)

    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    app.extensions["credit_store"] = store

    statements = StatementBuilder(store.status_engine.clock, config.balance_epsilon)

    @app.route("/", methods=["GET", "POST"])
    def index():
        summary = None
        schedule = None
        error = None
        form = request.form if request.method == "POST" else {}

        if request.method == "POST":
            try:
                terms = _form_to_terms(request.form, store.list_holidays())
                plan = generate_payment_schedule(terms, max_iterations=config.max_adjust_iterations)
                if plan is None:
                    error = "Could not generate a payment plan for these terms"
                else:
                    summary = summarize_schedule(plan)
                    schedule = plan.installments
            except (click.BadParameter, ValueError) as exc:
                error = exc.format_message() if isinstance(exc, click.BadParameter) else str(exc)

        return render_template(
            "calculator.html",
            summary=summary,
            schedule=schedule,
            error=error,
            form=form,
            frequency_options=FREQUENCY_OPTIONS,
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.get("/credits")
    def credits():
        as_of = _as_of_arg()
        rows = [(credit, store.status_engine.status(credit, as_of)) for credit in store.list_credits()]
        return render_template(
            "credits.html",
            rows=rows,
            provision_rules=PROVISION_RULES,
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.get("/credits/<credit_id>")
    def credit_detail(credit_id: str):
        as_of = _as_of_arg()
        try:
            credit = store.load_credit(credit_id)
        except CreditNotFoundError:
            abort(404)
        return render_template(
            "credit.html",
            credit=credit,
            snapshot=store.status_engine.status(credit, as_of),
            statement=statements.statement(credit, as_of),
            provision_rules=PROVISION_RULES,
            error=request.args.get("error"),
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.post("/credits/<credit_id>/payments")
    def add_payment(credit_id: str):
        try:
            payment = RegisteredPayment(
                id=uuid4().hex,
                payment_date=store.status_engine.clock.now(),
                amount=parse_amount(request.form.get("amount", "")),
                managed_by=request.form.get("managed_by", "").strip(),
                transaction_number=request.form.get("transaction_number", "").strip() or None,
            )
            store.add_payment(credit_id, payment)
        except CreditNotFoundError:
            abort(404)
        except (click.BadParameter, CreditEngineError) as exc:
            return redirect(url_for("credit_detail", credit_id=credit_id, error=str(exc)))
        return redirect(url_for("credit_detail", credit_id=credit_id))

    @app.post("/credits/<credit_id>/payments/<payment_id>/<action>")
    def payment_action(credit_id: str, payment_id: str, action: str):
        if action not in VOID_ACTIONS:
            abort(404)
        try:
            if action == "request_void":
                store.request_void(
                    credit_id,
                    payment_id,
                    request.form.get("reason", "").strip(),
                    request.form.get("requested_by", "").strip(),
                )
            elif action == "approve_void":
                store.approve_void(credit_id, payment_id)
            else:
                store.reject_void(credit_id, payment_id)
        except CreditNotFoundError:
            abort(404)
        except CreditEngineError as exc:
            return redirect(url_for("credit_detail", credit_id=credit_id, error=str(exc)))
        return redirect(url_for("credit_detail", credit_id=credit_id))

    @app.get("/credits/<credit_id>/payments/<payment_id>/receipt")
    def receipt(credit_id: str, payment_id: str):
        copy_type = request.args.get("copy", "CLIENTE").strip().upper()
        if copy_type not in RECEIPT_COPIES:
            abort(400, description=f"Unknown receipt copy: {copy_type}")
        try:
            credit = store.load_credit(credit_id)
            figures = build_receipt(credit, payment_id, store.status_engine)
        except CreditEngineError:
            abort(404)
        text = render_receipt_text(
            figures,
            copy_type=copy_type,
            reprint=request.args.get("reprint") == "1",
        )
        return Response(text, mimetype="text/plain")

    return app


if __name__ == "__main__":
    engine_config = EngineConfig.from_env()
    setup_logging(engine_config.log_level, engine_config.log_format)
    logger.info("Starting credit engine web app...")
    create_app(config=engine_config).run(host="0.0.0.0", port=8710, debug=True)
