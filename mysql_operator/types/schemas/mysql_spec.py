from marshmallow import fields, validate
from mysql_operator.types.base import BaseSchema
from mysql_operator.types.models.mysql_spec import MySQLSpec, MySQLStatus


class MySQLSpecSchema(BaseSchema):
    __model__ = MySQLSpec

    version = fields.Str(data_key="version", allow_none=False, required=True)
    storage_size = fields.Str(data_key="storageSize", allow_none=False, required=True)
    root_password = fields.Str(
        data_key="rootPassword", allow_none=True, load_default=""
    )


class MySQLStatusSchema(BaseSchema):
    __model__ = MySQLStatus

    phase = fields.Str(
        data_key="phase",
        load_default="",
        validate=validate.OneOf(
            ["", MySQLStatus.PENDING, MySQLStatus.RUNNING, MySQLStatus.FAILED]
        ),
    )
    message = fields.Str(data_key="message", load_default="")
    ready = fields.Bool(data_key="ready", load_default=False)
