"""
HTTP boundary — a single POST /imbue endpoint over the imputation core.
"""

import argparse
import logging
import os

from flask import Flask, jsonify, request

from . import __version__
from .engine import DataPoint, ImbueError, InvalidPointError, Strategy, imbue

logger = logging.getLogger(__name__)

DEFAULT_MAX_SPAN = 1_000_000


def resolve_max_span(max_span=None):
    """Span cap from the argument, then IMBUE_MAX_SPAN, then the default."""
    if max_span is not None:
        return int(max_span)
    env_value = os.environ.get("IMBUE_MAX_SPAN")
    if env_value:
        return int(env_value)
    return DEFAULT_MAX_SPAN


def parse_request(payload):
    """Validate an imbue request body into ``(points, strategy)``."""
    if not isinstance(payload, dict):
        raise ImbueError("Request body must be a JSON object.")

    dataset = payload.get("dataset")
    if not isinstance(dataset, list):
        raise ImbueError("'dataset' must be a list of {x, y} points.")

    strategy = Strategy.parse(payload.get("strategy"))

    points = []
    for item in dataset:
        if not isinstance(item, dict):
            raise InvalidPointError(f"Point must be an {{x, y}} object: {item!r}")
        points.append(DataPoint.coerce(item))
    return points, strategy


def create_app(max_span=None):
    app = Flask(__name__)
    app.config["IMBUE_MAX_SPAN"] = resolve_max_span(max_span)

    @app.route("/imbue", methods=["POST"])
    def imbue_data():
        payload = request.get_json(force=True, silent=True)
        try:
            points, strategy = parse_request(payload)
            imbued = imbue(points, strategy, max_span=app.config["IMBUE_MAX_SPAN"])
        except ImbueError as e:
            logger.warning("Rejected imbue request: %s", e)
            return jsonify({"error": str(e)}), 400

        logger.info(
            "Imbued %d points into a %d-point dataset (%s)",
            len(imbued), len(points), strategy.value,
        )
        return jsonify({"dataset": [p.to_dict() for p in imbued]})

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "version": __version__})

    return app


def main():
    parser = argparse.ArgumentParser(description="Imbue HTTP server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--max-span", type=int, default=None)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(max_span=args.max_span)
    logger.info(
        "Serving on %s:%d (max span %d)",
        args.host, args.port, app.config["IMBUE_MAX_SPAN"],
    )
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
