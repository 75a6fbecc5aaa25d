from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
import logging
import os
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
logger = logging.getLogger(__name__)


def create_app(config_name='development', document_store=None, blob_store=None):
    """Create the Flask application.

    The document store and blob store are injected so tests can swap in
    fakes; when omitted, the SQLAlchemy-backed store and the Supabase
    blob store are used.
    """
    app = Flask(__name__)

    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO').upper())

    # Config
    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    else:
        app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv(
            'DATABASE_URL',
            'sqlite:///campus_market.db'
        )

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['LISTING_IMAGES_BUCKET'] = os.getenv('LISTING_IMAGES_BUCKET', 'listing-images')
    app.config['UPLOAD_WORKERS'] = int(os.getenv('UPLOAD_WORKERS', 5))

    # Initialize extensions
    db.init_app(app)
    CORS(app)

    # Create tables with error handling
    with app.app_context():
        from campus_market import models  # noqa: F401
        try:
            db.create_all()
        except Exception as e:
            logger.warning(f"Could not create database tables: {e}")

    if document_store is None:
        from campus_market.services.document_store import SqlDocumentStore
        document_store = SqlDocumentStore(db.session)

    if blob_store is None:
        from campus_market.services.storage import SupabaseBlobStore
        blob_store = SupabaseBlobStore.from_env(app.config['LISTING_IMAGES_BUCKET'])

    app.extensions['document_store'] = document_store
    app.extensions['blob_store'] = blob_store

    # Register routes
    from campus_market.routes import register_routes
    register_routes(app)

    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    return app
