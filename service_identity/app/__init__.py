"""
Identity Service package for the Kratos Session Access Layer.

The service authenticates requests against Ory Kratos sessions and exposes
the resulting user to route handlers:
- Authentication: session token extraction and introspection via Kratos
- Normalization: free-form identity traits projected into CanonicalUser
- Propagation: the authenticated principal bound to a per-request scope

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.kratos: HTTP client and wire models for the Kratos APIs.
- app.auth: Credential extraction, authenticator and principal scope.
- app.users: Identity-only user lookups and account management.
"""
