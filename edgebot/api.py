"""
Web API for the micro-edge scanner.
Provides REST endpoints over the alert reader for the dashboard UI.
"""

import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from edgebot.config import Config
from edgebot.reader import AlertReader, empty_backtest
from edgebot.storage import AlertStore

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_BACKTEST_DAYS = 30


def create_app(reader: Optional[AlertReader] = None) -> Flask:
    """
    Build the Flask app.

    Args:
        reader: AlertReader to serve. If None, one is built over Config.DB_PATH.

    Returns:
        Configured Flask application
    """
    if reader is None:
        reader = AlertReader(AlertStore())

    app = Flask(__name__)
    CORS(app)
    app.config["ALERT_READER"] = reader

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'})

    # ============== Scanner ==============

    @app.route('/api/scanner/alerts')
    def scanner_alerts():
        """Recent active alerts, newest first."""
        limit = request.args.get('limit', Config.ALERTS_DEFAULT_LIMIT, type=int)
        alerts = reader.list_alerts(limit)
        return jsonify([alert.to_dict() for alert in alerts])

    @app.route('/api/scanner/metrics')
    def scanner_metrics():
        """Aggregate metrics over the trailing window."""
        window = request.args.get('days', Config.METRICS_WINDOW_DAYS, type=int)
        return jsonify(reader.get_metrics(window))

    @app.route('/api/scanner/backtest', methods=['POST'])
    def scanner_backtest():
        """Hit-rate report over persisted alert statuses."""
        body = request.get_json(silent=True) or {}
        days = body.get('days', request.args.get('days', DEFAULT_BACKTEST_DAYS))

        try:
            days = int(days)
        except (TypeError, ValueError):
            logger.warning(f"Invalid backtest days {days!r}, using {DEFAULT_BACKTEST_DAYS}")
            days = DEFAULT_BACKTEST_DAYS

        try:
            return jsonify(reader.run_backtest(days))
        except Exception as e:
            logger.error(f"Backtest error: {e}", exc_info=True)
            return jsonify(empty_backtest(days))

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return jsonify({'error': 'Method not allowed'}), 405

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False) -> None:
    """Serve the API with Flask's threaded development server."""
    app = create_app()
    host = host or Config.API_HOST
    port = port or Config.API_PORT
    logger.info(f"Serving scanner API on {host}:{port}")
    app.run(host=host, port=port, debug=debug, threaded=True)
