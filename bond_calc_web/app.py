"""JSON API for the bond calculators.

``create_app`` builds the Flask application. Each calculation is run
synchronously and returned at once; recording it in the calculation store
happens on a background executor so a slow or failing database never
delays or breaks the response.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from uuid import uuid4

from flask import Flask, jsonify, request, session

from bond_calc.calculators import CALCULATORS, RATE_KINDS, run_calculator
from bond_calc.config import Settings
from bond_calc.exceptions import InvalidInput
from bond_calc.logging_config import setup_logging
from bond_calc.prime_rate import SarbPrimeRateService, default_rate
from bond_calc.serialization import result_to_dict, to_jsonable
from bond_calc.transfer import get_schedule, load_schedule
from bond_calc_web.calculation_store import create_store_from_env

logger = logging.getLogger(__name__)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _request_data() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidInput("Request body must be a JSON object")
        return data
    return request.form.to_dict()


def _rate_given(kind: str, data: dict) -> bool:
    source = data.get("base") if kind == "comparison" else data
    if not isinstance(source, dict):
        return False
    value = source.get("annual_rate_percent")
    return value is not None and str(value).strip() != ""


def create_app(settings=None, store=None, prime_rate_provider=None) -> Flask:
    """Build the web app.

    Parameters
    ----------
    settings:
        Runtime settings; read from the environment when omitted.
    store:
        Calculation store; one is created from ``settings.database_url``
        when omitted.
    prime_rate_provider:
        Source of the default interest rate; the SARB service when omitted.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_json)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    calculation_store = store or create_store_from_env(
        settings.database_url, max_per_user=settings.max_results_per_user
    )
    provider = prime_rate_provider or SarbPrimeRateService(
        cache_seconds=settings.prime_rate_cache_seconds,
        fallback_rate=settings.prime_rate_fallback,
    )
    fee_schedule = None
    if settings.transfer_schedule_file:
        fee_schedule = load_schedule(Path(settings.transfer_schedule_file))
    elif settings.transfer_schedule_date:
        fee_schedule = get_schedule(settings.transfer_schedule_date)
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="persist") if settings.persist_in_background else None

    app.extensions["calculation_store"] = calculation_store
    app.extensions["prime_rate_provider"] = provider

    def _persist(user_id: str, kind: str, input_data: dict, result_data: dict) -> None:
        try:
            calculation_store.save(user_id, kind, input_data, result_data)
        except Exception:
            logger.exception("Failed to store %s result for user %s", kind, user_id)

    @app.errorhandler(InvalidInput)
    def invalid_input(exc: InvalidInput):
        logger.info("Rejected input: %s", exc)
        return jsonify({"error": str(exc), "field": exc.field}), 400

    @app.post("/api/calculators/<kind>")
    def calculate(kind: str):
        if kind not in CALCULATORS:
            return jsonify({"error": f"Unknown calculator: {kind}"}), 404
        user_id = _ensure_user_token()
        data = _request_data()

        rate = None
        if kind in RATE_KINDS and not _rate_given(kind, data):
            rate = default_rate(provider)
        schedule = fee_schedule if not data.get("schedule_date") else None
        result = run_calculator(kind, data, rate, fee_schedule=schedule)
        payload = result_to_dict(result)

        input_data = to_jsonable(result.inputs)
        if executor is not None:
            executor.submit(_persist, user_id, kind, input_data, payload)
        else:
            _persist(user_id, kind, input_data, payload)
        return jsonify(payload)

    @app.get("/api/calculations")
    def list_calculations():
        user_id = session.get("user_token")
        calculation_type = request.args.get("type")
        return jsonify({"results": calculation_store.list_for_user(user_id, calculation_type)})

    @app.get("/api/calculations/<int:result_id>")
    def get_calculation(result_id: int):
        row = calculation_store.get(session.get("user_token"), result_id)
        if row is None:
            return jsonify({"error": "Calculation not found"}), 404
        return jsonify(row)

    @app.delete("/api/calculations/<int:result_id>")
    def delete_calculation(result_id: int):
        if not calculation_store.delete(session.get("user_token"), result_id):
            return jsonify({"error": "Calculation not found"}), 404
        return jsonify({"deleted": result_id})

    @app.post("/api/calculations/clear")
    def clear_calculations():
        deleted = calculation_store.clear_for_user(session.get("user_token"))
        return jsonify({"deleted": deleted})

    @app.get("/api/prime-rate")
    def current_prime_rate():
        return jsonify(to_jsonable(provider.get_current_rate()))

    return app


if __name__ == "__main__":
    print("Starting bond calculator API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
