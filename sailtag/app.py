import kopf
import logging
import sailtag.handlers.istiorevisiontag as istiorevisiontag
import sailtag.handlers.watches as watches
from sailtag.types.settings import Settings
from sailtag.resources import ClusterStore
from sailtag.helm.chart_manager import HelmChartManager
from sailtag.controllers.revisiontag import RevisionTagReconciler
from sailtag.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient

FINALIZER = "sailoperator.io/finalizer"


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

    # One ApiClient shared by the store and the chart manager to prevent connection leaks
    memo.api_client = ApiClient()
    memo.store = ClusterStore(memo.api_client)
    memo.chart_manager = HelmChartManager(
        memo.api_client,
        executable=memo.conf.helm_executable,
        default_timeout=memo.conf.helm_default_timeout,
        history_max_revisions=memo.conf.helm_history_max_revisions,
    )
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    if memo.conf.metrics_enabled:
        sensor_delegate.add(PrometheusMonitor())
        try:
            init_metrics_server(memo.conf.metrics_port)
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            logger.warning("Continuing without metrics server")
    memo.sensor = sensor_delegate

    memo.reconciler = RevisionTagReconciler(
        memo.store, memo.chart_manager, conf=memo.conf, sensor=sensor_delegate
    )
    logger.info(f"Charts are loaded from {memo.conf.resource_directory}")

    settings.persistence.finalizer = FINALIZER

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = memo.conf.worker_limit

    # Post events to the Kubernetes API for logging >= Warning
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(memo: kopf.Memo, logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    api_client = getattr(memo, "api_client", None)
    if api_client:
        await api_client.close()
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "istiorevisiontag",
    "watches",
]
