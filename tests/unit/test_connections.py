"""
Module: test_connections.py
Description: Unit tests for the DynamoDB connection provider.
"""

import pytest

from trigger_relay.connections import DynamoDBConnectionProvider
from trigger_relay.exceptions import ConnectionNotFoundError


@pytest.fixture
def provider(connections_table):
    return DynamoDBConnectionProvider('test-connections', region_name='us-east-1')


class TestDynamoDBConnectionProvider:
    """Test cases for credential lookup."""

    def test_invalid_table_name(self):
        with pytest.raises(ValueError, match="table_name must be a non-empty string"):
            DynamoDBConnectionProvider('')

    @pytest.mark.asyncio
    async def test_returns_token(self, provider):
        assert await provider.get_access_token('conn-1') == 'token-abc'

    @pytest.mark.asyncio
    async def test_missing_connection(self, provider):
        with pytest.raises(ConnectionNotFoundError, match="Connection not found or no access token"):
            await provider.get_access_token('conn-unknown')

    @pytest.mark.asyncio
    async def test_connection_without_token(self, provider, connections_table):
        connections_table.put_item(Item={'connection_id': 'conn-2'})

        with pytest.raises(ConnectionNotFoundError):
            await provider.get_access_token('conn-2')
