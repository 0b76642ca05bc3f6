"""
Module: connections.py
Description: Connection credential lookup.

The processor needs a currently-valid bearer credential for a trigger's
connection before each poll. Acquiring and refreshing credentials is
the connection owner's job; this module only reads them.

Key Components:
- ConnectionProvider: Interface the processor depends on
- DynamoDBConnectionProvider: Reads access_token from the connections table

Dependencies: boto3, botocore, typing
Author: Trigger Relay Team
"""

from typing import Optional, Protocol

import boto3
from botocore.exceptions import ClientError

from trigger_relay.exceptions import ConnectionNotFoundError
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionProvider(Protocol):
    """Yields a valid bearer credential for a connection id."""

    async def get_access_token(self, connection_id: str) -> str:
        ...


class DynamoDBConnectionProvider:
    """
    Connection provider backed by the connections DynamoDB table.

    Items are keyed by connection_id and carry an access_token attribute
    kept fresh by the connection owner.
    """

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize the provider.

        Args:
            table_name: Name of the connections table
            region_name: Optional AWS region override

        Raises:
            ValueError: If table_name is empty or invalid
        """
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table_name must be a non-empty string")

        self.table_name = table_name
        self.table = boto3.resource('dynamodb', region_name=region_name).Table(table_name)

    async def get_access_token(self, connection_id: str) -> str:
        """
        Return the stored bearer credential for a connection.

        Raises:
            ConnectionNotFoundError: If the connection or its token is missing
            ClientError: If DynamoDB operation fails
        """
        if not connection_id or not isinstance(connection_id, str):
            raise ValueError("connection_id must be a non-empty string")

        try:
            response = self.table.get_item(
                Key={'connection_id': connection_id},
                ProjectionExpression='connection_id, access_token'
            )
        except ClientError as e:
            logger.error(
                "Failed to read connection from DynamoDB",
                connection_id=connection_id,
                table_name=self.table_name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

        token = response.get('Item', {}).get('access_token')
        if not token:
            raise ConnectionNotFoundError("Connection not found or no access token")
        return token
