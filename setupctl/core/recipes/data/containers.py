"""
Container tooling: docker, kind, minikube.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import APT_UPDATE, prerequisites

_CONTAINER_PREREQS = prerequisites(
    "apt-transport-https", "ca-certificates", "curl", "gnupg", "lsb-release",
)

_DOCKER_IF_MISSING = {
    "kind": "include",
    "name": "Installing Docker...",
    "fragment": "docker_engine",
    "when": {"unless_binary": "docker"},
}

_KUBECTL_IF_MISSING = {
    "kind": "include",
    "name": "Installing kubectl...",
    "fragment": "kubectl",
    "when": {"unless_binary": "kubectl"},
}


def _client_version(binary: str, argv: list[str]) -> dict:
    return {
        "kind": "verify",
        "name": f"Checking {binary}...",
        "error": f"{binary} is not installed",
        "binary": binary,
        "version_argv": argv,
        "fact": f"{binary}_version",
    }


CONTAINER_RECIPES: dict[str, dict] = {

    "docker": {
        "label": "Docker Engine",
        "description": "Docker CE from the Docker apt repository, plus standalone Compose.",
        "category": "containers",
        "services": ["docker"],
        "vars": [
            {"name": "compose_version", "default": "2.24.6", "description": "Standalone docker-compose release"},
        ],
        "steps": [
            APT_UPDATE,
            _CONTAINER_PREREQS,
            {"kind": "include", "fragment": "docker_repo"},
            {
                "kind": "apt_install",
                "name": "Installing Docker Engine...",
                "error": "Failed to install Docker",
                "packages": ["docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin"],
            },
            {
                "kind": "verify",
                "name": "Verifying Docker installation...",
                "error": "Docker installation verification failed",
                "binary": "docker",
                "version_argv": ["docker", "--version"],
                "fact": "docker_version",
            },
            {
                "kind": "group_member",
                "name": "Configuring non-root access...",
                "error": "Failed to add user to docker group",
                "group": "docker",
            },
            {
                "kind": "service",
                "name": "Starting Docker service...",
                "error": "Failed to start Docker service",
                "service": "docker",
                "actions": ["start", "enable"],
            },
            {
                "kind": "command",
                "name": "Testing Docker installation...",
                "error": "Docker test run failed",
                "argv": ["docker", "run", "--rm", "hello-world"],
                "expect": "Hello from Docker!",
                "timeout": 600,
            },
            {
                "kind": "download",
                "name": "Installing Docker Compose {compose_version}...",
                "error": "Failed to download Docker Compose",
                "url": (
                    "https://github.com/docker/compose/releases/download/"
                    "v{compose_version}/docker-compose-{system}-{machine}"
                ),
                "dest": "/usr/local/bin/docker-compose",
                "mode": "755",
            },
            {
                "kind": "verify",
                "name": "Verifying Docker Compose installation...",
                "error": "Docker Compose installation verification failed",
                "binary": "docker-compose",
                "version_argv": ["docker-compose", "--version"],
                "fact": "compose_version_installed",
            },
        ],
        "usage_title": "To get started with Docker:",
        "usage": [
            "1. Run containers: docker run <image>",
            "2. List containers: docker ps -a",
            "3. Use Compose: docker-compose up",
            "Note: Log out and back in for group changes to take effect",
        ],
    },

    "kind": {
        "label": "KinD (Kubernetes in Docker)",
        "description": "kind, kubectl and Docker if missing, then a test cluster.",
        "category": "containers",
        "vars": [
            {"name": "version", "default": "v0.23.0", "description": "kind release tag"},
            {"name": "cluster_name", "default": "test-cluster"},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "apt-transport-https", "ca-certificates", "gnupg", "lsb-release"),
            _DOCKER_IF_MISSING,
            _KUBECTL_IF_MISSING,
            {
                "kind": "download",
                "name": "Installing KinD {version}...",
                "error": "Failed to download KinD",
                "url": "https://kind.sigs.k8s.io/dl/{version}/kind-linux-{arch}",
                "dest": "/usr/local/bin/kind",
                "mode": "755",
                "when": {"unless_binary": "kind"},
            },
            _client_version("docker", ["docker", "--version"]),
            _client_version("kubectl", ["kubectl", "version", "--client"]),
            _client_version("kind", ["kind", "version"]),
            {
                "kind": "write_file",
                "name": "Writing KinD cluster config...",
                "error": "Failed to write kind-config.yaml",
                "path": "{work_dir}/kind-config.yaml",
                "needs_root": False,
                "content": (
                    "kind: Cluster\n"
                    "apiVersion: kind.x-k8s.io/v1alpha4\n"
                    "nodes:\n"
                    "- role: control-plane\n"
                ),
            },
            {
                "kind": "command",
                "name": "Creating a test KinD cluster...",
                "error": "Failed to create KinD cluster",
                "argv": [
                    "kind", "create", "cluster",
                    "--name", "{cluster_name}",
                    "--config", "{work_dir}/kind-config.yaml",
                ],
                "timeout": 900,
            },
            {
                "kind": "command",
                "name": "Verifying KinD cluster...",
                "error": "KinD cluster verification failed",
                "argv": ["kubectl", "cluster-info", "--context", "kind-{cluster_name}"],
            },
        ],
        "usage_title": "KinD Setup Information:",
        "usage": [
            "1. List clusters: kind get clusters",
            "2. Delete test cluster: kind delete cluster --name {cluster_name}",
            "3. Use kubectl: kubectl get nodes --context kind-{cluster_name}",
            "4. Create new cluster: kind create cluster --name <name>",
            "5. Check KinD version: kind version",
            "6. Note: Log out and back in for Docker group changes to take effect",
            "7. Current cluster info: kubectl cluster-info --context kind-{cluster_name}",
        ],
    },

    "minikube": {
        "label": "Minikube",
        "description": "Minikube on the Docker driver, with kubectl and Docker if missing.",
        "category": "containers",
        "vars": [
            {"name": "version", "default": "latest", "description": "'latest' or a release tag like v1.33.1"},
        ],
        "steps": [
            APT_UPDATE,
            _CONTAINER_PREREQS,
            _DOCKER_IF_MISSING,
            _KUBECTL_IF_MISSING,
            {
                "kind": "download",
                "name": "Installing Minikube...",
                "error": "Failed to install Minikube",
                "url": "https://storage.googleapis.com/minikube/releases/{version}/minikube-linux-{arch}",
                "dest": "/usr/local/bin/minikube",
                "mode": "755",
                "when": {"unless_binary": "minikube"},
            },
            _client_version("docker", ["docker", "--version"]),
            _client_version("kubectl", ["kubectl", "version", "--client"]),
            {
                "kind": "verify",
                "name": "Checking minikube...",
                "error": "minikube is not installed",
                "binary": "minikube",
                "version_argv": ["minikube", "version"],
                "first_line": True,
                "fact": "minikube_version",
            },
            {
                "kind": "command",
                "name": "Starting Minikube...",
                "error": "Failed to start Minikube",
                "argv": ["minikube", "start", "--driver=docker"],
                "timeout": 900,
            },
            {
                "kind": "command",
                "name": "Verifying Minikube...",
                "error": "Minikube failed to start",
                "script": "sleep 5 && minikube status",
            },
            {
                "kind": "command",
                "name": "Enabling Minikube dashboard...",
                "error": "Failed to enable dashboard",
                "argv": ["minikube", "addons", "enable", "dashboard"],
            },
        ],
        "usage_title": "Minikube Setup Information:",
        "usage": [
            "1. Start Minikube: minikube start",
            "2. Stop Minikube: minikube stop",
            "3. Access dashboard: minikube dashboard",
            "4. Check status: minikube status",
            "5. Use kubectl: kubectl get pods -A",
            "6. Note: Log out and back in for Docker group changes to take effect",
            "7. Current cluster info: kubectl cluster-info",
        ],
    },
}
