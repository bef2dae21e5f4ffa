"""
Shared step fragments and step builders.

Fragments are step sequences several recipes repeat verbatim (vendor
apt repositories, the Docker engine, kubectl, the Prometheus release
install). A recipe pulls one in with ``{"kind": "include", "fragment": ...}``.

Pure data plus a few builders that keep the recipe modules short.
"""

from __future__ import annotations

# ── Step builders ───────────────────────────────────────────────

APT_UPDATE: dict = {
    "kind": "apt_update",
    "name": "Updating package lists...",
    "error": "Failed to update package lists",
}

APT_CLEAN: dict = {
    "kind": "apt_clean",
    "name": "Cleaning up...",
    "error": "Failed to clean apt cache",
}


def apt_update_with(repo_label: str) -> dict:
    return {
        "kind": "apt_update",
        "name": f"Updating package lists with {repo_label} repository...",
        "error": f"Failed to update package lists with {repo_label} repo",
    }


def prerequisites(*packages: str) -> dict:
    return {
        "kind": "apt_install",
        "name": "Installing prerequisites...",
        "error": "Failed to install prerequisites",
        "packages": list(packages),
    }


def start_enable(service: str, label: str, *, reload: bool = False) -> dict:
    """systemctl [daemon-reload] start + enable."""
    actions = ["daemon-reload"] if reload else []
    return {
        "kind": "service",
        "name": f"Starting {label} service...",
        "error": f"Failed to start {label}",
        "service": service,
        "actions": actions + ["start", "enable"],
    }


def running(service: str, label: str, wait: float = 0) -> dict:
    return {
        "kind": "service_check",
        "name": f"Verifying {label} service...",
        "error": f"{label} failed to start",
        "service": service,
        "wait_seconds": wait,
    }


def open_ports(label: str, *rules: int | str) -> dict:
    return {
        "kind": "firewall",
        "name": "Configuring firewall...",
        "error": f"Failed to open firewall for {label}",
        "rules": list(rules),
    }


def java_verify() -> dict:
    return {
        "kind": "verify",
        "name": "Verifying Java installation...",
        "error": "Java installation verification failed",
        "binary": "java",
        "version_argv": ["java", "-version"],
        "version_pattern": r'version "([^"]+)"',
        "fact": "java_version",
    }


def _openjdk(version: int, flavor: str) -> list[dict]:
    return [
        {
            "kind": "apt_install",
            "name": f"Installing Java {version}...",
            "error": "Failed to install Java",
            "packages": [f"openjdk-{version}-{flavor}"],
        },
        java_verify(),
    ]


# ── Vendor repositories ─────────────────────────────────────────

DOCKER_KEYRING = "/usr/share/keyrings/docker-archive-keyring.gpg"
HASHICORP_KEYRING = "/usr/share/keyrings/hashicorp-archive-keyring.gpg"
GRAFANA_KEYRING = "/usr/share/keyrings/grafana-archive-keyring.gpg"


FRAGMENTS: dict[str, list[dict]] = {

    "docker_repo": [
        {
            "kind": "apt_repo",
            "name": "Adding Docker repository...",
            "error": "Failed to set up Docker repository",
            "key_url": "https://download.docker.com/linux/ubuntu/gpg",
            "keyring": DOCKER_KEYRING,
            "source": (
                f"deb [arch={{arch}} signed-by={DOCKER_KEYRING}] "
                "https://download.docker.com/linux/ubuntu {codename} stable"
            ),
            "list_file": "/etc/apt/sources.list.d/docker.list",
        },
        apt_update_with("Docker"),
    ],

    "hashicorp_repo": [
        {
            "kind": "apt_repo",
            "name": "Adding HashiCorp repository...",
            "error": "Failed to add HashiCorp repository",
            "key_url": "https://apt.releases.hashicorp.com/gpg",
            "keyring": HASHICORP_KEYRING,
            "source": (
                f"deb [arch={{arch}} signed-by={HASHICORP_KEYRING}] "
                "https://apt.releases.hashicorp.com {codename} main"
            ),
            "list_file": "/etc/apt/sources.list.d/hashicorp.list",
        },
        apt_update_with("HashiCorp"),
    ],

    "grafana_repo": [
        {
            "kind": "apt_repo",
            "name": "Adding Grafana repository...",
            "error": "Failed to add Grafana repository",
            "key_url": "https://apt.grafana.com/gpg.key",
            "keyring": GRAFANA_KEYRING,
            "source": f"deb [signed-by={GRAFANA_KEYRING}] https://apt.grafana.com stable main",
            "list_file": "/etc/apt/sources.list.d/grafana.list",
        },
        apt_update_with("Grafana"),
    ],

    # ── Runtimes ────────────────────────────────────────────────

    "openjdk_11_jre": _openjdk(11, "jre"),
    "openjdk_11_jdk": _openjdk(11, "jdk"),
    "openjdk_17_jre": _openjdk(17, "jre"),

    # ── Container tooling ───────────────────────────────────────

    "docker_engine": [
        {"kind": "include", "fragment": "docker_repo"},
        {
            "kind": "apt_install",
            "name": "Installing Docker Engine...",
            "error": "Failed to install Docker",
            "packages": ["docker-ce", "docker-ce-cli", "containerd.io"],
        },
        {
            "kind": "group_member",
            "name": "Adding {invoking_user} to the docker group...",
            "error": "Failed to add user to docker group",
            "group": "docker",
        },
        {
            "kind": "service",
            "name": "Starting Docker service...",
            "error": "Failed to start Docker",
            "service": "docker",
            "actions": ["enable", "start"],
        },
    ],

    "kubectl": [
        {
            "kind": "command",
            "name": "Resolving the stable kubectl release...",
            "error": "Failed to resolve the kubectl version",
            "argv": ["curl", "-fsSL", "https://dl.k8s.io/release/stable.txt"],
            "capture": "kubectl_version",
            "needs_root": False,
        },
        {
            "kind": "download",
            "name": "Installing kubectl {kubectl_version}...",
            "error": "Failed to download kubectl",
            "url": "https://dl.k8s.io/release/{kubectl_version}/bin/linux/{arch}/kubectl",
            "dest": "/usr/local/bin/kubectl",
            "mode": "755",
        },
    ],

    # ── Monitoring ──────────────────────────────────────────────

    "prometheus_install": [
        {
            "kind": "system_user",
            "name": "Creating Prometheus system user...",
            "error": "Failed to create Prometheus user",
            "user": "prometheus",
        },
        {
            "kind": "archive",
            "name": "Downloading Prometheus {prometheus_version}...",
            "error": "Failed to install Prometheus",
            "url": (
                "https://github.com/prometheus/prometheus/releases/download/"
                "v{prometheus_version}/prometheus-{prometheus_version}.linux-{arch}.tar.gz"
            ),
            "install": {
                "prometheus-{prometheus_version}.linux-{arch}/prometheus": "/usr/local/bin/prometheus",
                "prometheus-{prometheus_version}.linux-{arch}/promtool": "/usr/local/bin/promtool",
                "prometheus-{prometheus_version}.linux-{arch}/consoles": "/etc/prometheus/consoles",
                "prometheus-{prometheus_version}.linux-{arch}/console_libraries": "/etc/prometheus/console_libraries",
            },
        },
        {
            "kind": "directory",
            "name": "Creating Prometheus directories...",
            "error": "Failed to create Prometheus directories",
            "paths": ["/etc/prometheus", "/var/lib/prometheus"],
            "owner": "prometheus:prometheus",
        },
        {
            "kind": "write_file",
            "name": "Configuring Prometheus...",
            "error": "Failed to write prometheus.yml",
            "path": "/etc/prometheus/prometheus.yml",
            "owner": "prometheus:prometheus",
            "content": (
                "global:\n"
                "  scrape_interval: 15s\n"
                "\n"
                "scrape_configs:\n"
                "  - job_name: 'prometheus'\n"
                "    static_configs:\n"
                "      - targets: ['localhost:{prometheus_port}']\n"
            ),
        },
        {
            "kind": "write_file",
            "name": "Creating Prometheus service...",
            "error": "Failed to create Prometheus service",
            "path": "/etc/systemd/system/prometheus.service",
            "content": (
                "[Unit]\n"
                "Description=Prometheus Monitoring\n"
                "Wants=network-online.target\n"
                "After=network-online.target\n"
                "\n"
                "[Service]\n"
                "User=prometheus\n"
                "Group=prometheus\n"
                "Type=simple\n"
                "ExecStart=/usr/local/bin/prometheus \\\n"
                "    --config.file /etc/prometheus/prometheus.yml \\\n"
                "    --storage.tsdb.path /var/lib/prometheus/ \\\n"
                "    --web.console.templates=/etc/prometheus/consoles \\\n"
                "    --web.console.libraries=/etc/prometheus/console_libraries \\\n"
                "    --web.listen-address=0.0.0.0:{prometheus_port}\n"
                "Restart=always\n"
                "\n"
                "[Install]\n"
                "WantedBy=multi-user.target\n"
            ),
        },
        start_enable("prometheus", "Prometheus", reload=True),
        running("prometheus", "Prometheus", wait=5),
        {
            "kind": "verify",
            "name": "Verifying Prometheus installation...",
            "error": "Prometheus installation verification failed",
            "binary": "prometheus",
            "version_argv": ["prometheus", "--version"],
            "first_line": True,
            "fact": "prometheus_build",
        },
    ],

    "grafana_install": [
        {"kind": "include", "fragment": "grafana_repo"},
        {
            "kind": "apt_install",
            "name": "Installing Grafana...",
            "error": "Failed to install Grafana",
            "packages": ["grafana"],
        },
        start_enable("grafana-server", "Grafana", reload=True),
        running("grafana-server", "Grafana", wait=5),
        {
            "kind": "verify",
            "name": "Checking Grafana version...",
            "binary": "grafana-server",
            "version_argv": ["grafana-server", "--version"],
            "ignore_errors": True,
        },
        {
            "kind": "edit_file",
            "name": "Configuring Grafana to listen on port {grafana_port}...",
            "error": "Failed to configure Grafana",
            "path": "/etc/grafana/grafana.ini",
            "substitutions": [
                {"pattern": r";http_port = 3000", "replacement": "http_port = {grafana_port}"},
                {"pattern": r";http_addr =", "replacement": "http_addr = 0.0.0.0"},
            ],
            "when": {"if_path": "/etc/grafana/grafana.ini"},
        },
        {
            "kind": "service",
            "name": "Restarting Grafana...",
            "error": "Failed to restart Grafana",
            "service": "grafana-server",
            "actions": ["restart"],
        },
    ],
}
