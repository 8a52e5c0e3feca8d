"""Development server for the barbershop API."""
from __future__ import annotations

import argparse
import os

from barbershop import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the barbershop API locally")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 3000)))
    parser.add_argument("--routes", action="store_true", help="list the mounted routes and exit")
    args = parser.parse_args()

    flask_app = create_app()

    if args.routes:
        for rule in sorted(flask_app.url_map.iter_rules(), key=lambda r: r.rule):
            methods = ",".join(sorted(rule.methods - {"HEAD", "OPTIONS"}))
            print(f"{methods:<12} {rule.rule}")
        return

    flask_app.logger.info(
        "Barbershop API on port %s (database %s, shop timezone %s)",
        args.port,
        flask_app.config["SQLALCHEMY_DATABASE_URI"].split("://", 1)[0],
        flask_app.config["SHOP_TIMEZONE"],
    )
    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host="0.0.0.0", port=args.port, debug=debug_enabled)


if __name__ == "__main__":
    main()
