"""
Module: schema.py
Description: DynamoDB table definitions.

Shared by the local table bootstrap script and the test fixtures so the
key schema and indexes used by the repository exist everywhere.
"""

from typing import Any, Dict, List

STATUS_INDEX = 'StatusIndex'
TRIGGER_INDEX = 'TriggerIndex'


def _hash_table(table_name: str, key: str) -> Dict[str, Any]:
    return {
        'TableName': table_name,
        'KeySchema': [{'AttributeName': key, 'KeyType': 'HASH'}],
        'AttributeDefinitions': [{'AttributeName': key, 'AttributeType': 'S'}],
        'BillingMode': 'PAY_PER_REQUEST',
    }


def table_definitions(
    triggers_table_name: str,
    trigger_state_table_name: str,
    trigger_events_table_name: str,
    connections_table_name: str
) -> List[Dict[str, Any]]:
    """create_table() keyword arguments for every table the service uses."""
    events = {
        'TableName': trigger_events_table_name,
        'KeySchema': [{'AttributeName': 'event_id', 'KeyType': 'HASH'}],
        'AttributeDefinitions': [
            {'AttributeName': 'event_id', 'AttributeType': 'S'},
            {'AttributeName': 'status', 'AttributeType': 'S'},
            {'AttributeName': 'trigger_id', 'AttributeType': 'S'},
            {'AttributeName': 'created_at', 'AttributeType': 'S'},
        ],
        'GlobalSecondaryIndexes': [
            {
                'IndexName': STATUS_INDEX,
                'KeySchema': [
                    {'AttributeName': 'status', 'KeyType': 'HASH'},
                    {'AttributeName': 'created_at', 'KeyType': 'RANGE'},
                ],
                'Projection': {'ProjectionType': 'ALL'},
            },
            {
                'IndexName': TRIGGER_INDEX,
                'KeySchema': [
                    {'AttributeName': 'trigger_id', 'KeyType': 'HASH'},
                    {'AttributeName': 'created_at', 'KeyType': 'RANGE'},
                ],
                'Projection': {'ProjectionType': 'ALL'},
            },
        ],
        'BillingMode': 'PAY_PER_REQUEST',
    }

    return [
        _hash_table(triggers_table_name, 'trigger_id'),
        _hash_table(trigger_state_table_name, 'trigger_id'),
        events,
        _hash_table(connections_table_name, 'connection_id'),
    ]


def create_tables(dynamodb, definitions: List[Dict[str, Any]]) -> None:
    """Create the tables on a boto3 DynamoDB resource and wait until they exist."""
    for definition in definitions:
        table = dynamodb.create_table(**definition)
        table.wait_until_exists()
