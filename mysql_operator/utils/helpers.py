import re
from kubernetes.utils import parse_quantity
from mysql_operator.utils.errors import MalformedQuantityError

# Quantity grammar accepted by the API server
QUANTITY_PATTERN = re.compile(
    r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+|[KMGTPE]i|[numkMGTPE])?$"
)


def canonicalize_name(name: str) -> str:
    """Convert a resource name to a form usable in dependent object names.

    Dots are not allowed by the naming rules of some dependent kinds (e.g. services),
    so every `.` becomes `-`. No further validation is applied.
    """
    return name.replace(".", "-")


def parse_storage_quantity(quantity: str):
    """Parse a Kubernetes quantity literal such as `10Gi` or `500M`.

    Returns the quantity as a Decimal number of units.

    Raises:
        MalformedQuantityError: if the literal is not a valid quantity.
    """
    if not isinstance(quantity, str) or not quantity:
        raise MalformedQuantityError(quantity, "empty quantity")
    if not QUANTITY_PATTERN.fullmatch(quantity):
        raise MalformedQuantityError(quantity, "quantities must match " + QUANTITY_PATTERN.pattern)
    try:
        return parse_quantity(quantity)
    except ValueError as ex:
        raise MalformedQuantityError(quantity, str(ex)) from ex
