from mysql_operator.common.models.labels import Labels


class DependentKind:
    """Kinds of the objects created on behalf of a MySQL resource."""

    SECRET = "Secret"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    DEPLOYMENT = "Deployment"
    SERVICE = "Service"

    # Order in which dependents are synchronized
    ALL = (SECRET, PERSISTENT_VOLUME_CLAIM, DEPLOYMENT, SERVICE)


class BaseResource:
    """Base resource model."""

    OPERATOR_NAME = "mysql-operator"

    _cluster: str
    _namespace: str
    _component_name: str
    _labels: Labels

    def __init__(
        self, cluster: str, namespace: str, component_name: str, labels: Labels
    ):
        self._cluster = cluster
        self._namespace = namespace
        self._component_name = component_name
        self._labels = labels

    @property
    def cluster(self) -> str:
        return self._cluster

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def component_name(self) -> str:
        return self._component_name

    @property
    def labels(self) -> Labels:
        return self._labels

