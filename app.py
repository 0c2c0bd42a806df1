import logging

from flask import Flask, request
from flask_compress import Compress

from dogtrails.aggregate import TrailService
from dogtrails.config import load_settings
from routes.api import api_bp

logger = logging.getLogger(__name__)


def create_app(service=None, settings=None):
    settings = settings or load_settings()
    app = Flask(__name__)

    # Gzip/Brotli compression for JSON responses
    Compress(app)
    app.config['COMPRESS_ALGORITHM'] = ['br', 'gzip']
    app.config['COMPRESS_MIMETYPES'] = ['application/json']

    if service is None:
        service = TrailService(settings.overpass_urls, settings.doc_api_key)
        if not settings.doc_api_key:
            logger.info('DOC_API_KEY not set, serving OpenStreetMap trails only')
    app.extensions['trail_service'] = service

    app.register_blueprint(api_bp)

    @app.after_request
    def add_cache_headers(response):
        if request.path.startswith('/api/'):
            response.headers['Cache-Control'] = 'public, max-age=60'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        return response

    return app


if __name__ == '__main__':
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    app = create_app(settings=settings)
    logger.info(f'listening on http://127.0.0.1:{settings.port}')
    app.run(host='127.0.0.1', port=settings.port, debug=False, threaded=True)
