from .mysql_spec import MySQLSpec, MySQLStatus
from .mysql_resources import MySQLResources

__all__ = [
    "MySQLSpec",
    "MySQLStatus",
    "MySQLResources",
]
