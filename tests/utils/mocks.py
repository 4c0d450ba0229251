"""
Mocks for the database and external services.
"""
from unittest.mock import patch
from typing import Optional, List, Any

from bookify.core.security import create_access_token


class MockDBConnection:
    """Stand-in for an asyncpg connection. Return values are matched by query substring."""

    def __init__(self):
        self.fetchrow_returns = {}
        self.fetch_returns = {}
        self.fetchval_returns = {}
        self.execute_returns = {}
        self._call_history = []

    def set_fetchrow_return(self, query_contains: str, value: Any):
        """Configure the fetchrow result for queries containing a substring."""
        self.fetchrow_returns[query_contains] = value

    def set_fetch_return(self, query_contains: str, value: List[Any]):
        """Configure the fetch result for queries containing a substring."""
        self.fetch_returns[query_contains] = value

    def set_fetchval_return(self, query_contains: str, value: Any):
        """Configure the fetchval result for queries containing a substring."""
        self.fetchval_returns[query_contains] = value

    def set_execute_return(self, query_contains: str, value: str):
        self.execute_returns[query_contains] = value

    @staticmethod
    def _match(returns: dict, query: str, args, default):
        for key, value in returns.items():
            if key in query:
                if callable(value):
                    return value(*args)
                return value
        return default

    async def fetchrow(self, query: str, *args) -> Optional[dict]:
        self._call_history.append(("fetchrow", query, args))
        return self._match(self.fetchrow_returns, query, args, None)

    async def fetch(self, query: str, *args) -> List[dict]:
        self._call_history.append(("fetch", query, args))
        return self._match(self.fetch_returns, query, args, [])

    async def execute(self, query: str, *args) -> str:
        self._call_history.append(("execute", query, args))
        return self._match(self.execute_returns, query, args, "UPDATE 1")

    async def fetchval(self, query: str, *args) -> Any:
        self._call_history.append(("fetchval", query, args))
        return self._match(self.fetchval_returns, query, args, None)

    def was_called_with(self, method: str, query_contains: str) -> bool:
        """Check whether a method ran a query containing a substring."""
        for call in self._call_history:
            if call[0] == method and query_contains in call[1]:
                return True
        return False

    def calls_with(self, method: str, query_contains: str) -> List[tuple]:
        """Arguments of every call of a method whose query contains a substring."""
        return [
            call[2] for call in self._call_history
            if call[0] == method and query_contains in call[1]
        ]


class MockDBContextManager:
    """Context manager returned in place of get_db_connection()."""

    def __init__(self, connection: MockDBConnection = None):
        self.connection = connection or MockDBConnection()

    async def __aenter__(self):
        return self.connection

    async def __aexit__(self, *args):
        pass


def create_db_mock(target: str, connection: MockDBConnection = None):
    """
    Patch get_db_connection where a service module imported it.

    Usage:
        db_patch, conn = create_db_mock('bookify.services.cart_service.get_db_connection')
        with db_patch:
            ...
    """
    conn = connection or MockDBConnection()
    ctx_manager = MockDBContextManager(conn)

    return patch(target, return_value=ctx_manager), conn


# Authenticated callers

CUSTOMER_ID = "11111111-1111-1111-1111-111111111111"
ORGANIZER_ID = "22222222-2222-2222-2222-222222222222"
ADMIN_ID = "33333333-3333-3333-3333-333333333333"


def auth_headers(user_id: str, roles: List[str], email: str = "user@test.com", username: str = "tester") -> dict:
    """Authorization header carrying a real access token for the given roles."""
    token = create_access_token(user_id, email, username, roles)
    return {"Authorization": f"Bearer {token}"}
