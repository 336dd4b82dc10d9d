"""
Alias registry construction for the current request.
"""

from urllib.parse import urlparse

from flask import current_app, request

from gaexp_editor.models.alias_registry import GLOBAL_KEY, AliasRegistry, scope_key


def registry_key() -> str:
    """Storage key for the aliases of the current request's cookie."""
    if not current_app.config.get("GAEXP_ALIAS_SCOPE_BY_DOMAIN"):
        return GLOBAL_KEY
    domain = current_app.config.get("GAEXP_COOKIE_DOMAIN") or urlparse(request.host_url).hostname
    return scope_key(current_app.config["GAEXP_COOKIE_NAME"], domain)


def build_registry() -> AliasRegistry:
    """Create an unloaded alias registry over the app's alias store."""
    return AliasRegistry(current_app.extensions["gaexp_alias_store"], key=registry_key())
