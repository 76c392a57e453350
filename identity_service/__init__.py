"""Identity Service Flask Application Package.

To use the Flask app:
    from identity_service.flask_app import create_app

To use Keycloak services:
    from identity_service.core.keycloak import KeycloakClient, RealmService
"""
# Note: flask_app is not imported here so the core services stay usable
# without building an application instance.
