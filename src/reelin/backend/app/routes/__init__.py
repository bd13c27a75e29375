"""Blueprint registrations for application routes."""

from flask import Flask

from .calculations import blueprint as calculations_blueprint
from .config import blueprint as config_blueprint
from .hmrc import blueprint as hmrc_blueprint
from .transactions import blueprint as transactions_blueprint
from .vat import blueprint as vat_blueprint


def register_routes(app: Flask) -> None:
    """Register all Flask blueprints with the provided application."""

    app.register_blueprint(calculations_blueprint)
    app.register_blueprint(config_blueprint)
    app.register_blueprint(vat_blueprint)
    app.register_blueprint(hmrc_blueprint)
    app.register_blueprint(transactions_blueprint)
