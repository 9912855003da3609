"""
JOBPORTAL API Test Suite

Test Files:
- conftest.py: Shared fixtures (database, app, users, tokens)
- test_auth_routes.py: Register, login, logout and current-user flows
- test_admin_routes.py: Role gating, user management and audit history
- test_audit_store.py: Persistence, filtering and immutability of the audit trail

Run Commands:
    # All tests
    pytest jobportal/api/tests -v

    # Audit trail only
    pytest jobportal/api/tests/test_audit_store.py -v
"""
