"""Routes package for the campus marketplace."""


def register_routes(app):
    """Register all route blueprints with the application."""
    from .listings import listings_bp

    app.register_blueprint(listings_bp, url_prefix='/api/listings')
