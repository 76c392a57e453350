"""Core Business Logic Module

Forwarding services for the external systems, independent of Flask.

Module Structure:
    - keycloak/       : Keycloak Admin/OIDC client and services
    - docker_hub.py   : Docker Hub repositories and image push (docker CLI)
    - github.py       : GitHub repository provisioning (git CLI)
    - shell.py        : Subprocess runner with secret masking
    - models.py       : Signup and role request models
    - validators.py   : Input validation

Usage Pattern:
    These modules are NOT auto-imported so the Keycloak client can be used
    without pulling in the other integrations.

        from identity_service.core.keycloak import KeycloakClient, RoleService
        from identity_service.core.docker_hub import DockerHubService
        from identity_service.core.github import ProvisioningService
"""
