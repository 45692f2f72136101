"""
Lambda Function Handler for the scheduled cost report

Packaged together with the penny package and the config/ directory.
The scheduled rule passes the query to run as the event.
"""

import json

from penny.handler import lambda_handler

__all__ = ['lambda_handler']


# For testing locally
if __name__ == "__main__":
    # Test event
    test_event = {
        'query_name': 'daily_cost_by_service',
        'query_type': 'cost_report',
        'sql': open('queries/cost_by_service.sql').read(),
        'database': 'cur_database',
        'output_location': 's3://penny-athena-results/query-results/',
    }

    result = lambda_handler(test_event, None)
    print(json.dumps(result, indent=2))
