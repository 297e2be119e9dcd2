"""Cluster status summary through the Kubernetes API."""
import logging
from pathlib import Path
from typing import Any, Dict, List

from kubernetes import client, config
from kubernetes.client.rest import ApiException

logger = logging.getLogger("kubeprov.status")


def core_api(kubeconfig: str) -> client.CoreV1Api:
    """CoreV1 client bound to one kubeconfig file, leaving the global client config alone."""
    path = Path(kubeconfig).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Kubeconfig not found: {path}")
    return client.CoreV1Api(api_client=config.new_client_from_config(config_file=str(path)))


def check_nodes(v1: client.CoreV1Api) -> List[Dict[str, Any]]:
    nodes = v1.list_node().items
    summary = []
    for node in nodes:
        conditions = node.status.conditions or []
        ready = any(c.type == "Ready" and c.status == "True" for c in conditions)
        roles = sorted(
            label.split("/", 1)[1]
            for label in (node.metadata.labels or {})
            if label.startswith("node-role.kubernetes.io/")
        )
        summary.append({
            "name": node.metadata.name,
            "status": "Ready" if ready else "NotReady",
            "roles": roles or ["<none>"],
            "version": node.status.node_info.kubelet_version if node.status.node_info else "",
        })
    return summary


def check_pods(v1: client.CoreV1Api) -> List[Dict[str, Any]]:
    pods = v1.list_pod_for_all_namespaces().items
    return [{
        "namespace": pod.metadata.namespace,
        "name": pod.metadata.name,
        "phase": pod.status.phase,
    } for pod in pods]


def cluster_summary(kubeconfig: str) -> Dict[str, Any]:
    """Collect node readiness and pod phases.

    Returns:
        Dict with ``nodes`` and ``pods`` lists, or an ``error`` message
    """
    try:
        v1 = core_api(kubeconfig)
        return {"nodes": check_nodes(v1), "pods": check_pods(v1)}
    except ApiException as e:
        return {"error": f"API error {e.status}: {e.reason}"}
    except Exception as e:
        logger.debug("Status query failed", exc_info=True)
        return {"error": str(e)}


def format_summary(summary: Dict[str, Any]) -> str:
    if "error" in summary:
        return f"Cluster status unavailable: {summary['error']}"

    lines = ["Cluster Status:"]
    for node in summary["nodes"]:
        lines.append(f"  {node['name']:<30} {node['status']:<10} {','.join(node['roles']):<15} {node['version']}")
    if not summary["nodes"]:
        lines.append("  (no nodes registered)")

    pods = summary["pods"]
    running = sum(1 for p in pods if p["phase"] in ("Running", "Succeeded"))
    lines.append("")
    lines.append(f"System Pods Status: {running}/{len(pods)} running")
    for pod in pods:
        if pod["phase"] not in ("Running", "Succeeded"):
            lines.append(f"  {pod['namespace']}/{pod['name']}: {pod['phase']}")
    return "\n".join(lines)
