from .mysql_spec import MySQLSpecSchema, MySQLStatusSchema

__all__ = [
    "MySQLSpecSchema",
    "MySQLStatusSchema",
]
