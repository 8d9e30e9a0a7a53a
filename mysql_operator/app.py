import kopf
import logging
import mysql_operator.handlers.mysql as mysql
import mysql_operator.handlers.probes as probes
from mysql_operator.reconciler import Reconciler
from mysql_operator.resources import KubernetesCluster
from mysql_operator.types.settings import Settings
from mysql_operator.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


# Configure Kopf settings
@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # Load Kubernetes config - try in-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()

    # One ApiClient shared by every reconciliation pass
    shared_client = ApiClient()
    KubernetesCluster.shared_api_client = shared_client
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    if memo.conf.metrics_enabled:
        sensor_delegate.add(PrometheusMonitor())
        try:
            init_metrics_server(memo.conf.metrics_port)
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            logger.warning("Continuing without metrics server")
    else:
        logger.warning("Metrics are disabled as per configuration.")
    memo.sensor = sensor_delegate

    memo.reconciler = Reconciler(
        KubernetesCluster(shared_client, conf=memo.conf),
        conf=memo.conf,
        sensor=sensor_delegate,
    )

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = memo.conf.worker_limit

    # Only post events to the Kubernetes API for logging >= Warning
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    if getattr(KubernetesCluster, "shared_api_client", None):
        await KubernetesCluster.shared_api_client.close()
        KubernetesCluster.shared_api_client = None
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "mysql",
    "probes",
]
