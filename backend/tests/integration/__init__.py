"""Integration tests for UniversalAPI.

Integration tests:
- Require database and/or Redis
- Test API endpoints with real database
- Test component interactions
- May be slower than unit tests

Markers:
- @pytest.mark.integration - All integration tests
- @pytest.mark.slow - Slower integration tests
"""
