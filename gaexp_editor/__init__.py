"""
gaexp-editor - edit the Google Optimize `_gaexp` experiment cookie of a browser session
"""
from flask import Flask, redirect, url_for
import os
from pathlib import Path


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(test_config=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    # Cookie being edited and the format prefix written in front of the experiments
    app.config['GAEXP_COOKIE_NAME'] = os.environ.get('GAEXP_COOKIE_NAME', '_gaexp')
    app.config['GAEXP_COOKIE_PREFIX'] = os.environ.get('GAEXP_COOKIE_PREFIX', 'GAX1.2.')
    # Attributes used when writing the cookie back. Google Analytics sets _gaexp on the
    # registrable domain (e.g. .example.com); deployments must set GAEXP_COOKIE_DOMAIN to
    # that value, otherwise the rewrite is a host-only cookie that shadows the original.
    app.config['GAEXP_COOKIE_DOMAIN'] = os.environ.get('GAEXP_COOKIE_DOMAIN') or None
    app.config['GAEXP_COOKIE_PATH'] = os.environ.get('GAEXP_COOKIE_PATH', '/')
    # Aliases file; defaults to <instance>/data/aliases.json
    app.config['GAEXP_ALIAS_FILE'] = os.environ.get('GAEXP_ALIAS_FILE')
    # Keep a separate alias mapping per cookie domain instead of one global mapping
    app.config['GAEXP_ALIAS_SCOPE_BY_DOMAIN'] = _env_bool('GAEXP_ALIAS_SCOPE_BY_DOMAIN', False)
    app.config['GAEXP_SETTLE_SECONDS'] = float(os.environ.get('GAEXP_SETTLE_SECONDS', '0.25'))
    app.config['GAEXP_DRAFT_EXPIRY_DAYS'] = int(os.environ.get('GAEXP_DRAFT_EXPIRY_DAYS', '90'))
    app.config['GAEXP_LOAD_TIMEOUT_SECONDS'] = float(os.environ.get('GAEXP_LOAD_TIMEOUT_SECONDS', '5'))

    if test_config:
        app.config.update(test_config)

    if not app.config['GAEXP_COOKIE_DOMAIN']:
        app.logger.warning("GAEXP_COOKIE_DOMAIN is not set; saved cookies will be host-only")

    # Ensure Flask knows it's behind a proxy (for HTTPS detection)
    # The secure flag of a rewritten cookie depends on it
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,
        x_proto=1,
        x_host=1,
        x_port=1,
        x_prefix=1
    )

    # Ensure instance folder exists for the alias data
    instance_path = Path(app.instance_path)
    (instance_path / 'data').mkdir(parents=True, exist_ok=True)
    if not app.config['GAEXP_ALIAS_FILE']:
        app.config['GAEXP_ALIAS_FILE'] = str(instance_path / 'data' / 'aliases.json')

    from gaexp_editor.models.alias_registry import AliasStore
    app.extensions['gaexp_alias_store'] = AliasStore(app.config['GAEXP_ALIAS_FILE'])

    @app.route('/')
    def root():
        """Redirect root to the editor"""
        return redirect(url_for('editor.index'))

    from gaexp_editor.features.editor.blueprint import bp as editor_bp
    app.register_blueprint(editor_bp)  # /gaexp/

    return app
