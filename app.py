"""
Main entry point for gaexp-editor.
"""
import os
import logging
from gaexp_editor import create_app

app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))

    # Enable debug mode by default for local development
    # Set FLASK_ENV=production to disable debug mode
    debug = os.environ.get('FLASK_ENV') != 'production'

    # For local development, use localhost; for production, use 0.0.0.0
    host = '127.0.0.1' if debug else '0.0.0.0'

    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    logging.getLogger(__name__).info("Starting gaexp-editor on http://%s:%s/gaexp/", host, port)
    logging.getLogger(__name__).info("Environment: %s", "Development" if debug else "Production")

    # Editor sessions live in this process; the reloader would start a second one
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
