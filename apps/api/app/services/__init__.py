"""Service layer modules.

Import service modules directly (`from app.services import business_service`).
membership_service and permission_service are leaves: the authorization
policies depend on them, and every other service depends on the policies.
"""
