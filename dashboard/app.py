"""
kabu-ai Dashboard
Local Flask UI: stop-high / soaring tables, analysis report, settings.

Every /api/* endpoint returns JSON {status, message, html}; `html` is a
server-rendered fragment the page swaps into place.
"""

# ============ IMPORTS ============
from __future__ import annotations

import logging

from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from kabu_ai.config import Settings, load_settings
from kabu_ai.controller import SOARING, STOP_HIGHS, ActionResult, AppController
from kabu_ai.utils.dates import format_jp_header, market_now
from kabu_ai.view import SCAN_SOURCE_LIMIT, alert_view, model_options, report_view, source_links, stock_rows

logger = logging.getLogger(__name__)


# ============ RESPONSE HELPERS ============

def _payload(result: ActionResult, html: str = "", **extra) -> dict:
    data = {"status": result.status, "message": result.message, "html": html}
    if result.status != "ok" and result.message:
        data["alert_html"] = render_template("_alert.html", alert=alert_view(result.message, "warning"))
    data.update(extra)
    return data


def _form() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


# ============ APP FACTORY ============

def create_app(settings: Settings | None = None, controller: AppController | None = None) -> Flask:
    settings = settings or load_settings()
    ctl = controller or AppController.from_settings(settings)

    app = Flask(__name__)
    app.config["CONTROLLER"] = ctl

    @app.route("/")
    def index():
        """Main page."""
        st = ctl.state
        startup = ctl.startup_alert()
        snap = st.snapshot
        return render_template(
            "index.html",
            theme=st.theme,
            today=format_jp_header(market_now(settings.market_timezone).date()),
            model_badge=st.credentials.selected_model or "未選択",
            alert=alert_view(startup.message, "warning") if startup else None,
            api_key=st.credentials.api_key,
            models=model_options(st.available_models, st.credentials.selected_model),
            snapshot_date=snap.date if snap else "",
            stop_high_rows=stock_rows(snap.stop_highs) if snap else [],
            soaring_rows=stock_rows(snap.soaring) if snap else [],
            sources=source_links(snap.citations, SCAN_SOURCE_LIMIT) if snap else [],
            report=report_view(st.report) if st.report else None,
        )

    @app.route("/api/settings", methods=["POST"])
    def api_settings():
        """Save API key (required) and model."""
        form = _form()
        result = ctl.save_settings(form.get("api_key", ""), form.get("model"))
        html = render_template("_alert.html", alert=alert_view(result.message, result.level))
        return jsonify(_payload(result, html, model_badge=ctl.state.credentials.selected_model))

    @app.route("/api/theme", methods=["POST"])
    def api_theme():
        return jsonify({"status": "ok", "theme": ctl.toggle_theme()})

    @app.route("/api/models", methods=["POST"])
    def api_models():
        """List generateContent models; uses the key typed in the modal if any."""
        form = _form()
        result = ctl.fetch_models(form.get("api_key"))
        html = ""
        if result.ok:
            html = render_template(
                "_model_options.html",
                models=model_options(result.payload, ctl.state.credentials.selected_model),
            )
        return jsonify(_payload(result, html))

    @app.route("/api/scan", methods=["POST"])
    def api_scan():
        """Stop-high + soaring scan for the target trading day."""
        result = ctl.scan_market()
        if not result.ok:
            return jsonify(_payload(result))
        snap = result.payload
        return jsonify(
            _payload(
                result,
                date=snap.date,
                stop_high_count=len(snap.stop_highs),
                soaring_count=len(snap.soaring),
                stop_high_html=render_template("_stock_table.html", rows=stock_rows(snap.stop_highs), category=STOP_HIGHS),
                soaring_html=render_template("_stock_table.html", rows=stock_rows(snap.soaring), category=SOARING),
                sources_html=render_template(
                    "_sources.html", sources=source_links(snap.citations, SCAN_SOURCE_LIMIT)
                ),
            )
        )

    def _report_response(result: ActionResult):
        if not result.ok:
            html = ""
            if result.status == "error":
                html = render_template("_alert.html", alert=alert_view(result.message, "warning"))
            return jsonify(_payload(result, html))
        return jsonify(_payload(result, render_template("_report.html", report=report_view(result.payload))))

    @app.route("/api/analyze", methods=["POST"])
    def api_analyze():
        """Analyze a row from the current scan, addressed by list and row number."""
        form = _form()
        try:
            index = int(form.get("index", 0))
        except (TypeError, ValueError):
            index = 0
        stock = ctl.stock_at(str(form.get("category", "")), index)
        if stock is None:
            return jsonify(_payload(ActionResult("error", "選択した銘柄は現在の一覧にありません。"))), 404
        return _report_response(ctl.analyze_stock(stock))

    @app.route("/api/search", methods=["POST"])
    def api_search():
        """Analyze a free-text query (4-digit code or company name)."""
        return _report_response(ctl.analyze_query(str(_form().get("query", ""))))

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error in %s", request.path)
        result = ActionResult("error", f"予期しないエラーが発生しました: {exc}")
        return jsonify(_payload(result)), 500

    return app


if __name__ == "__main__":
    _settings = load_settings()
    create_app(_settings).run(host="127.0.0.1", port=_settings.dashboard_port, debug=True, threaded=True)
