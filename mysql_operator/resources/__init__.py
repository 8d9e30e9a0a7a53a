from .base import DependentKind
from .mysql import MySQL
from .cluster import Cluster, KubernetesCluster

__all__ = ["MySQL", "Cluster", "KubernetesCluster", "DependentKind"]
