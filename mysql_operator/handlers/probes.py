import datetime
import kopf
from mysql_operator.handlers.mysql import reconciliation_locks


# Liveness probe
@kopf.on.probe(id="now")
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id="tracked")
def count_tracked_resources(**kwargs):
    """Number of MySQL resources the operator has reconciled since startup."""
    return len(reconciliation_locks)
