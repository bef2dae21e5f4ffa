"""
Monitoring: prometheus, grafana, grafana-prometheus.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import APT_UPDATE, open_ports, prerequisites

_PROMETHEUS_VARS = [
    {"name": "prometheus_version", "default": "2.51.0", "description": "Prometheus release"},
    {"name": "prometheus_port", "default": 9090},
]

_GRAFANA_VARS = [
    {"name": "grafana_port", "default": 3000},
]


MONITORING_RECIPES: dict[str, dict] = {

    "prometheus": {
        "label": "Prometheus",
        "description": "Prometheus server from the GitHub release archive, run by systemd.",
        "category": "monitoring",
        "services": ["prometheus"],
        "vars": _PROMETHEUS_VARS,
        "steps": [
            APT_UPDATE,
            prerequisites("wget", "curl"),
            {"kind": "include", "fragment": "prometheus_install"},
            open_ports("Prometheus", "{prometheus_port}"),
        ],
        "usage_title": "Prometheus Setup Information:",
        "usage": [
            "1. Access Prometheus at: http://localhost:{prometheus_port} (or your server's IP)",
            "2. Service commands:",
            "   - Status: systemctl status prometheus",
            "   - Restart: systemctl restart prometheus",
            "3. Configuration file: /etc/prometheus/prometheus.yml",
            "4. Data directory: /var/lib/prometheus",
            "5. Add more scrape targets in /etc/prometheus/prometheus.yml",
        ],
    },

    "grafana": {
        "label": "Grafana",
        "description": "Grafana OSS from the Grafana apt repository.",
        "category": "monitoring",
        "services": ["grafana-server"],
        "vars": _GRAFANA_VARS,
        "steps": [
            APT_UPDATE,
            prerequisites("apt-transport-https", "software-properties-common", "wget"),
            {"kind": "include", "fragment": "grafana_install"},
            open_ports("Grafana", "{grafana_port}"),
        ],
        "usage_title": "Grafana Setup Information:",
        "usage": [
            "1. Access Grafana at: http://localhost:{grafana_port} (or your server's IP)",
            "2. Default credentials: admin/admin",
            "3. Service commands:",
            "   - Status: systemctl status grafana-server",
            "   - Restart: systemctl restart grafana-server",
            "4. Configuration file: /etc/grafana/grafana.ini",
            "5. Logs: /var/log/grafana/grafana.log",
            "6. Change the default admin password after first login!",
        ],
    },

    "grafana-prometheus": {
        "label": "Grafana + Prometheus",
        "description": "Prometheus and Grafana on one host.",
        "category": "monitoring",
        "services": ["prometheus", "grafana-server"],
        "vars": _PROMETHEUS_VARS + _GRAFANA_VARS,
        "steps": [
            APT_UPDATE,
            prerequisites(
                "apt-transport-https", "software-properties-common", "wget", "curl",
            ),
            {"kind": "include", "fragment": "prometheus_install"},
            {"kind": "include", "fragment": "grafana_install"},
            open_ports("Grafana and Prometheus", "{prometheus_port}", "{grafana_port}"),
        ],
        "usage_title": "Setup Information:",
        "usage": [
            "1. Prometheus UI: http://localhost:{prometheus_port}",
            "2. Grafana UI: http://localhost:{grafana_port}",
            "3. Grafana default credentials: admin/admin",
            "4. Service commands:",
            "   - Prometheus: systemctl [status|restart] prometheus",
            "   - Grafana: systemctl [status|restart] grafana-server",
            "5. Configuration files:",
            "   - Prometheus: /etc/prometheus/prometheus.yml",
            "   - Grafana: /etc/grafana/grafana.ini",
            "6. Next steps:",
            "   - Login to Grafana and add Prometheus as a data source (http://localhost:{prometheus_port})",
            "   - Change Grafana admin password",
        ],
    },
}
