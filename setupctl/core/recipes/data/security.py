"""
Code quality and security tooling: sonarqube, owasp-zap, trivy, vault.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import (
    APT_CLEAN,
    APT_UPDATE,
    apt_update_with,
    java_verify,
    open_ports,
    prerequisites,
    running,
    start_enable,
)

TRIVY_KEYRING = "/usr/share/keyrings/trivy-archive-keyring.gpg"

_TRIVY_REPO = {"var_equals": {"install_method": "repo"}}
_TRIVY_BINARY = {"var_equals": {"install_method": "binary"}}


SECURITY_RECIPES: dict[str, dict] = {

    "sonarqube": {
        "label": "SonarQube",
        "description": "SonarQube community edition backed by a local PostgreSQL.",
        "category": "security",
        "services": ["sonarqube", "postgresql"],
        "vars": [
            {"name": "version", "default": "10.4.1.88267", "description": "SonarQube release"},
            {"name": "install_dir", "default": "/opt/sonarqube"},
            {"name": "db_name", "default": "sonarqube"},
            {"name": "db_user", "default": "sonarqube"},
            {"name": "db_password", "default": "sonar123", "description": "Change this in production"},
            {"name": "port", "default": 9000},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("unzip", "wget", "openjdk-17-jre", "postgresql", "postgresql-contrib"),
            java_verify(),
            start_enable("postgresql", "PostgreSQL"),
            {
                "kind": "command",
                "name": "Creating SonarQube database and user...",
                "error": "Failed to configure PostgreSQL database",
                "argv": ["runuser", "-u", "postgres", "--", "psql"],
                "input": (
                    "CREATE USER {db_user} WITH ENCRYPTED PASSWORD '{db_password}';\n"
                    "CREATE DATABASE {db_name};\n"
                    "GRANT ALL PRIVILEGES ON DATABASE {db_name} TO {db_user};\n"
                    "\\q\n"
                ),
            },
            {
                "kind": "system_user",
                "name": "Creating SonarQube system user...",
                "error": "Failed to create SonarQube user",
                "user": "sonarqube",
            },
            {
                "kind": "archive",
                "name": "Downloading SonarQube {version}...",
                "error": "Failed to install SonarQube",
                "url": "https://binaries.sonarsource.com/Distribution/sonarqube/sonarqube-{version}.zip",
                "format": "zip",
                "install": {"sonarqube-{version}": "{install_dir}"},
            },
            {
                "kind": "directory",
                "name": "Setting SonarQube permissions...",
                "error": "Failed to set permissions",
                "paths": ["{install_dir}"],
                "owner": "sonarqube:sonarqube",
            },
            {
                "kind": "write_file",
                "name": "Configuring SonarQube properties...",
                "error": "Failed to write sonar.properties",
                "path": "{install_dir}/conf/sonar.properties",
                "owner": "sonarqube:sonarqube",
                "content": (
                    "sonar.jdbc.username={db_user}\n"
                    "sonar.jdbc.password={db_password}\n"
                    "sonar.jdbc.url=jdbc:postgresql://localhost:5432/{db_name}\n"
                    "sonar.web.host=0.0.0.0\n"
                    "sonar.web.port={port}\n"
                ),
            },
            {
                "kind": "write_file",
                "name": "Creating SonarQube service...",
                "error": "Failed to create SonarQube service",
                "path": "/etc/systemd/system/sonarqube.service",
                "content": (
                    "[Unit]\n"
                    "Description=SonarQube service\n"
                    "After=network.target\n"
                    "\n"
                    "[Service]\n"
                    "Type=forking\n"
                    "ExecStart={install_dir}/bin/linux-x86-64/sonar.sh start\n"
                    "ExecStop={install_dir}/bin/linux-x86-64/sonar.sh stop\n"
                    "User=sonarqube\n"
                    "Group=sonarqube\n"
                    "Restart=always\n"
                    "LimitNOFILE=65536\n"
                    "LimitNPROC=4096\n"
                    "\n"
                    "[Install]\n"
                    "WantedBy=multi-user.target\n"
                ),
            },
            start_enable("sonarqube", "SonarQube", reload=True),
            running("sonarqube", "SonarQube", wait=10),
            open_ports("SonarQube", "{port}"),
        ],
        "usage_title": "SonarQube Setup Information:",
        "usage": [
            "1. Access SonarQube at: http://localhost:{port} (or your server's IP)",
            "2. Default credentials: admin/admin",
            "3. Service commands:",
            "   - Status: systemctl status sonarqube",
            "   - Restart: systemctl restart sonarqube",
            "4. Logs: {install_dir}/logs",
            "5. Change the default admin password after first login!",
        ],
    },

    "owasp-zap": {
        "label": "OWASP ZAP",
        "description": "ZAP daemon from the GitHub release archive, run by systemd.",
        "category": "security",
        "aliases": ["zap"],
        "services": ["zap"],
        "vars": [
            {"name": "version", "default": "2.15.0", "description": "ZAP release"},
            {"name": "install_dir", "default": "/opt/zaproxy"},
            {"name": "port", "default": 8080},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("openjdk-17-jre", "wget", "unzip"),
            java_verify(),
            {
                "kind": "system_user",
                "name": "Creating OWASP ZAP system user...",
                "error": "Failed to create ZAP user",
                "user": "zap",
            },
            {
                "kind": "archive",
                "name": "Downloading OWASP ZAP {version}...",
                "error": "Failed to install OWASP ZAP",
                "url": (
                    "https://github.com/zaproxy/zaproxy/releases/download/"
                    "v{version}/ZAP_{version}_Linux.tar.gz"
                ),
                "install": {"ZAP_{version}": "{install_dir}"},
            },
            {
                "kind": "directory",
                "name": "Setting ZAP permissions...",
                "error": "Failed to set permissions",
                "paths": ["{install_dir}"],
                "owner": "zap:zap",
            },
            {
                "kind": "command",
                "name": "Creating symlink for ZAP command...",
                "error": "Failed to create symlink",
                "argv": ["ln", "-sf", "{install_dir}/zap.sh", "/usr/local/bin/zap"],
            },
            {
                "kind": "write_file",
                "name": "Creating OWASP ZAP service...",
                "error": "Failed to create ZAP service",
                "path": "/etc/systemd/system/zap.service",
                "content": (
                    "[Unit]\n"
                    "Description=OWASP ZAP Service\n"
                    "After=network.target\n"
                    "\n"
                    "[Service]\n"
                    "Type=simple\n"
                    "User=zap\n"
                    "ExecStart={install_dir}/zap.sh -daemon -host 0.0.0.0 -port {port}\n"
                    "Restart=on-failure\n"
                    "\n"
                    "[Install]\n"
                    "WantedBy=multi-user.target\n"
                ),
            },
            start_enable("zap", "ZAP", reload=True),
            running("zap", "OWASP ZAP", wait=5),
            {
                "kind": "verify",
                "name": "Checking OWASP ZAP version...",
                "path": "{install_dir}/zap.sh",
                "version_argv": ["{install_dir}/zap.sh", "-version"],
                "fact": "zap_version",
                "ignore_errors": True,
            },
            open_ports("OWASP ZAP", "{port}"),
        ],
        "usage_title": "OWASP ZAP Setup Information:",
        "usage": [
            "1. Access ZAP UI at: http://localhost:{port} (or your server's IP)",
            "2. Command-line usage: 'zap -cmd' (see 'zap -h' for options)",
            "3. Service commands:",
            "   - Status: systemctl status zap",
            "   - Restart: systemctl restart zap",
            "4. Installation directory: {install_dir}",
            "5. Logs: Check {install_dir} for log files",
        ],
    },

    "trivy": {
        "label": "Trivy",
        "description": "Aqua Security's vulnerability scanner, from apt or the release binary.",
        "category": "security",
        "vars": [
            {
                "name": "install_method",
                "default": "repo",
                "choices": ["repo", "binary"],
                "description": "repo (apt) or binary (GitHub release)",
            },
            {"name": "version", "default": "latest", "description": "'latest' or a version like 0.55.2"},
            {"name": "install_dir", "default": "/usr/local/bin", "description": "Binary install target"},
            {"name": "test_output", "default": "/tmp/trivy_test_output.txt"},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "gnupg", "lsb-release"),

            # apt repository
            {
                "kind": "apt_repo",
                "name": "Adding Trivy repository...",
                "error": "Failed to add Trivy repository",
                "key_url": "https://aquasecurity.github.io/trivy-repo/deb/public.key",
                "keyring": TRIVY_KEYRING,
                "source": (
                    f"deb [signed-by={TRIVY_KEYRING}] "
                    "https://aquasecurity.github.io/trivy-repo/deb {codename} main"
                ),
                "list_file": "/etc/apt/sources.list.d/trivy.list",
                "when": _TRIVY_REPO,
            },
            {**apt_update_with("Trivy"), "when": _TRIVY_REPO},
            {
                "kind": "apt_install",
                "name": "Installing Trivy via APT...",
                "error": "Failed to install Trivy {version}",
                "packages": ["trivy"],
                "pin": "{version}",
                "when": _TRIVY_REPO,
            },

            # release binary
            {
                "kind": "github_release",
                "name": "Resolving the latest Trivy release...",
                "error": "Failed to resolve the latest Trivy release",
                "repo": "aquasecurity/trivy",
                "strip_v": True,
                "when": {"var_equals": {"install_method": "binary", "version": "latest"}},
            },
            {
                "kind": "archive",
                "name": "Installing Trivy {version} via binary...",
                "error": "Failed to install the Trivy binary",
                "url": (
                    "https://github.com/aquasecurity/trivy/releases/download/"
                    "v{version}/trivy_{version}_Linux-64bit.tar.gz"
                ),
                "extract_dir": "trivy",
                "install": {"trivy": "{install_dir}/trivy"},
                "when": _TRIVY_BINARY,
            },

            {
                "kind": "verify",
                "name": "Verifying Trivy installation...",
                "error": "Trivy installation verification failed",
                "binary": "trivy",
                "version_argv": ["trivy", "--version"],
                "version_pattern": r"Version: (\S+)",
                "fact": "trivy_version",
            },
            APT_CLEAN,
            {
                "kind": "command",
                "name": "Testing Trivy with a sample scan...",
                "error": "Failed to run Trivy test scan",
                "argv": ["trivy", "image", "--severity", "CRITICAL", "alpine:3.18"],
                "output_file": "{test_output}",
                "needs_root": False,
                "timeout": 900,
            },
        ],
        "usage_title": "Trivy Setup Information:",
        "usage": [
            "1. Check Trivy version: trivy --version",
            "2. Scan an image: trivy image <image-name>",
            "3. Scan a filesystem: trivy fs /path/to/scan",
            "4. Update vulnerability DB: trivy image --download-db-only",
            "5. Test output: cat {test_output}",
            "6. Documentation: https://aquasecurity.github.io/trivy/",
        ],
    },

    "vault": {
        "label": "HashiCorp Vault",
        "description": "Vault server from the HashiCorp apt repository with file storage.",
        "category": "security",
        "services": ["vault"],
        "vars": [
            {"name": "version", "default": "latest", "description": "'latest' or an exact package version"},
            {"name": "config_dir", "default": "/etc/vault.d"},
            {"name": "data_dir", "default": "/opt/vault/data"},
            {"name": "port", "default": 8200},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "gnupg", "lsb-release", "unzip"),
            {"kind": "include", "fragment": "hashicorp_repo"},
            {
                "kind": "apt_install",
                "name": "Installing Vault...",
                "error": "Failed to install Vault {version}",
                "packages": ["vault"],
                "pin": "{version}",
            },
            {
                "kind": "verify",
                "name": "Verifying Vault installation...",
                "error": "Vault installation verification failed",
                "binary": "vault",
                "version_argv": ["vault", "version"],
                "fact": "vault_version",
            },
            {
                "kind": "system_user",
                "name": "Creating Vault system user...",
                "error": "Failed to create Vault user",
                "user": "vault",
                "create_home": True,
            },
            {
                "kind": "directory",
                "name": "Creating Vault directories...",
                "error": "Failed to create Vault directories",
                "paths": ["{config_dir}", "{data_dir}"],
                "owner": "vault:vault",
                "mode": "700",
            },
            {
                "kind": "write_file",
                "name": "Configuring Vault...",
                "error": "Failed to write vault.hcl",
                "path": "{config_dir}/vault.hcl",
                "owner": "vault:vault",
                "mode": "640",
                "content": (
                    "ui = true\n"
                    "disable_mlock = true\n"
                    "\n"
                    'storage "file" {\n'
                    '    path = "{data_dir}"\n'
                    "}\n"
                    "\n"
                    'listener "tcp" {\n'
                    '    address = "0.0.0.0:{port}"\n'
                    "    tls_disable = 1\n"
                    "}\n"
                    "\n"
                    'api_addr = "http://0.0.0.0:{port}"\n'
                    'cluster_name = "vault-cluster"\n'
                ),
            },
            {
                "kind": "write_file",
                "name": "Creating Vault systemd service...",
                "error": "Failed to create Vault service",
                "path": "/etc/systemd/system/vault.service",
                "content": (
                    "[Unit]\n"
                    "Description=HashiCorp Vault - A tool for managing secrets\n"
                    "Documentation=https://www.vaultproject.io/docs/\n"
                    "Requires=network-online.target\n"
                    "After=network-online.target\n"
                    "ConditionFileNotEmpty={config_dir}/vault.hcl\n"
                    "\n"
                    "[Service]\n"
                    "User=vault\n"
                    "Group=vault\n"
                    "ProtectSystem=full\n"
                    "PrivateTmp=yes\n"
                    "PrivateDevices=yes\n"
                    "SecureBits=keep-caps\n"
                    "AmbientCapabilities=CAP_IPC_LOCK\n"
                    "NoNewPrivileges=yes\n"
                    "ExecStart=/usr/bin/vault server -config={config_dir}/vault.hcl\n"
                    "ExecReload=/bin/kill --signal HUP $MAINPID\n"
                    "KillMode=process\n"
                    "KillSignal=SIGINT\n"
                    "Restart=on-failure\n"
                    "RestartSec=5\n"
                    "TimeoutStopSec=30\n"
                    "StartLimitBurst=3\n"
                    "LimitNOFILE=65536\n"
                    "\n"
                    "[Install]\n"
                    "WantedBy=multi-user.target\n"
                ),
            },
            start_enable("vault", "Vault", reload=True),
            running("vault", "Vault", wait=5),
            open_ports("Vault", "{port}"),
        ],
        "usage_title": "Vault Setup Information:",
        "usage": [
            "1. Access Vault UI: http://localhost:{port}/ui (or your server's IP)",
            "2. Service commands:",
            "   - Status: systemctl status vault",
            "   - Restart: systemctl restart vault",
            "   - Stop: systemctl stop vault",
            "3. Configuration file: {config_dir}/vault.hcl",
            "4. Data directory: {data_dir}",
            "5. Next steps:",
            "   - Initialize Vault: vault operator init",
            "   - Unseal Vault: vault operator unseal",
            "6. Documentation: https://www.vaultproject.io/docs/",
        ],
    },
}
