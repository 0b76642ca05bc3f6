#!/usr/bin/env python3
"""
Script: create_tables.py
Description: Create the Trigger Relay DynamoDB tables.

Creates the triggers, trigger state, trigger events and connections
tables named in the current settings, and can store a connection
credential for local testing.

Usage:
    python scripts/create_tables.py
    python scripts/create_tables.py --endpoint-url http://localhost:8001
    python scripts/create_tables.py --connection-id conn-1 --access-token ya29...
"""

import argparse
import sys

import boto3
from botocore.exceptions import ClientError

from trigger_relay.config import settings
from trigger_relay.storage.schema import table_definitions
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)


def create_missing_tables(dynamodb) -> None:
    """Create every table that does not exist yet."""
    existing = {table.name for table in dynamodb.tables.all()}
    definitions = table_definitions(
        settings.triggers_table_name,
        settings.trigger_state_table_name,
        settings.trigger_events_table_name,
        settings.connections_table_name
    )

    for definition in definitions:
        name = definition['TableName']
        if name in existing:
            print(f"   = {name} already exists")
            continue
        try:
            dynamodb.create_table(**definition).wait_until_exists()
        except ClientError as e:
            logger.error(
                "Failed to create table",
                table_name=name,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise
        logger.info("Table created", table_name=name)
        print(f"   + {name} created")


def store_connection(dynamodb, connection_id: str, access_token: str) -> None:
    """Store a bearer credential in the connections table."""
    dynamodb.Table(settings.connections_table_name).put_item(
        Item={'connection_id': connection_id, 'access_token': access_token}
    )
    logger.info("Connection stored", connection_id=connection_id)
    print(f"   + connection {connection_id} stored")


def main():
    """Main script execution."""
    parser = argparse.ArgumentParser(description="Create Trigger Relay DynamoDB tables")
    parser.add_argument(
        '--endpoint-url',
        type=str,
        default=None,
        help='DynamoDB endpoint override (e.g. DynamoDB Local)'
    )
    parser.add_argument('--connection-id', type=str, help='Connection to store after creating tables')
    parser.add_argument('--access-token', type=str, help='Access token for --connection-id')
    args = parser.parse_args()

    if bool(args.connection_id) != bool(args.access_token):
        parser.error("--connection-id and --access-token must be given together")

    dynamodb = boto3.resource(
        'dynamodb',
        region_name=settings.aws_region,
        endpoint_url=args.endpoint_url
    )

    print(f"Creating tables in {settings.aws_region} ({settings.stage})")
    try:
        create_missing_tables(dynamodb)
        if args.connection_id:
            store_connection(dynamodb, args.connection_id, args.access_token)
    except ClientError as e:
        print(f"ERROR: {e.response['Error']['Message']}")
        sys.exit(1)

    print("Done.")


if __name__ == "__main__":
    main()
