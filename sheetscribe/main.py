"""
HTTP entrypoints for scheduled re-entry.

Each route runs one workflow step to completion and returns how many cells it
wrote.  Cloud Scheduler (or any cron) calls ``/transcriptions/fetch``
repeatedly until every handle has a transcript; nothing here loops or waits
on the speech service.

Serve with e.g. ``gunicorn 'sheetscribe.main:create_app()'``.
"""

import json
import logging
import os
from typing import Callable, Optional

from flask import Flask, jsonify, request

from .config import Settings
from .prompts import TASKS
from .workflow import Workflow

logger = logging.getLogger(__name__)


def _log(event: str, **fields) -> None:
    logger.info(json.dumps({"event": event, **fields}))


def create_app(workflow_factory: Optional[Callable[[], Workflow]] = None) -> Flask:
    """Build the Flask app.

    Settings are read once here, so missing secrets fail at start-up rather
    than on the first request.
    """
    if workflow_factory is None:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
        settings = Settings.from_env()
        workflow = Workflow.from_settings(settings)

        def workflow_factory() -> Workflow:
            return workflow

    app = Flask(__name__)

    def run_step(step: str, action: Callable[[Workflow], int]):
        _log("request", step=step)
        try:
            written = action(workflow_factory())
        except Exception as exc:
            logger.exception("Error in step %s", step)
            _log("step_failed", step=step, error=str(exc))
            return jsonify(step=step, error=str(exc)), 500
        _log("step_complete", step=step, written=written)
        return jsonify(step=step, written=written), 200

    @app.route("/list", methods=["POST"])
    def list_files():
        data = request.get_json(silent=True) or {}
        gcs_path = data.get("gcs_path")
        if not gcs_path:
            return jsonify(error="Missing 'gcs_path' in request"), 400
        return run_step("list", lambda wf: wf.list_files(gcs_path))

    @app.route("/transcriptions/start", methods=["POST"])
    def start_transcriptions():
        return run_step("start_transcriptions", lambda wf: wf.start_transcriptions())

    @app.route("/transcriptions/fetch", methods=["POST"])
    def fetch_transcriptions():
        return run_step("fetch_transcriptions", lambda wf: wf.fetch_transcriptions())

    @app.route("/tasks/<name>", methods=["POST"])
    def run_task(name: str):
        if name not in TASKS:
            return jsonify(error=f"Unknown task: {name}"), 404
        return run_step(name, lambda wf: wf.run_task(name))

    @app.route("/token/reset", methods=["POST"])
    def reset_token():
        workflow_factory().credentials.reset()
        _log("token_reset")
        return jsonify(step="reset_token", written=0), 200

    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    create_app().run(host="0.0.0.0", port=port)
