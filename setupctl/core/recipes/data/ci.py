"""
CI servers and artifact repositories: jenkins, jfrog.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import (
    APT_UPDATE,
    apt_update_with,
    java_verify,
    open_ports,
    prerequisites,
    running,
    start_enable,
)

JENKINS_KEYRING = "/usr/share/keyrings/jenkins-keyring.asc"
JFROG_KEYRING = "/usr/share/keyrings/jfrog-archive-keyring.gpg"


CI_RECIPES: dict[str, dict] = {

    "jenkins": {
        "label": "Jenkins",
        "description": "Jenkins LTS from pkg.jenkins.io on OpenJDK 11.",
        "category": "ci",
        "services": ["jenkins"],
        "vars": [
            {"name": "port", "default": 8080},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("fontconfig", "openjdk-11-jre"),
            java_verify(),
            {
                "kind": "apt_repo",
                "name": "Adding Jenkins repository...",
                "error": "Failed to add Jenkins repository",
                "key_url": "https://pkg.jenkins.io/debian-stable/jenkins.io-2023.key",
                "keyring": JENKINS_KEYRING,
                "dearmor": False,
                "source": f"deb [signed-by={JENKINS_KEYRING}] https://pkg.jenkins.io/debian-stable binary/",
                "list_file": "/etc/apt/sources.list.d/jenkins.list",
            },
            apt_update_with("Jenkins"),
            {
                "kind": "apt_install",
                "name": "Installing Jenkins...",
                "error": "Failed to install Jenkins",
                "packages": ["jenkins"],
            },
            start_enable("jenkins", "Jenkins"),
            running("jenkins", "Jenkins", wait=5),
            {
                "kind": "verify",
                "name": "Checking Jenkins version...",
                "binary": "jenkins",
                "version_argv": ["jenkins", "--version"],
                "fact": "jenkins_version",
                "ignore_errors": True,
            },
            {
                "kind": "read_file",
                "name": "Retrieving initial admin password...",
                "error": "Initial admin password file not found",
                "path": "/var/lib/jenkins/secrets/initialAdminPassword",
                "fact": "initial_password",
            },
            open_ports("Jenkins", "{port}"),
        ],
        "usage_title": "Jenkins Setup Information:",
        "usage": [
            "1. Access Jenkins at: http://localhost:{port} (or your server's IP)",
            "2. Initial Admin Password: {initial_password}",
            "3. Service commands:",
            "   - Status: systemctl status jenkins",
            "   - Restart: systemctl restart jenkins",
            "4. Logs: /var/log/jenkins/jenkins.log",
        ],
    },

    "jfrog": {
        "label": "JFrog Artifactory OSS",
        "description": "Artifactory OSS from the JFrog apt repository.",
        "category": "ci",
        "aliases": ["artifactory"],
        "services": ["artifactory"],
        "vars": [
            {"name": "version", "default": "latest", "description": "'latest' or an exact package version"},
            {"name": "port", "default": 8081},
            {"name": "jfrog_home", "default": "/opt/jfrog"},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "gnupg", "lsb-release", "openjdk-11-jre"),
            java_verify(),
            {
                "kind": "apt_repo",
                "name": "Adding JFrog Artifactory repository...",
                "error": "Failed to add JFrog repository",
                "key_url": "https://releases.jfrog.io/artifactory/api/gpg/key/public",
                "keyring": JFROG_KEYRING,
                "source": (
                    f"deb [signed-by={JFROG_KEYRING}] "
                    "https://releases.jfrog.io/artifactory/artifactory-debs {codename} main"
                ),
                "list_file": "/etc/apt/sources.list.d/jfrog-artifactory.list",
            },
            apt_update_with("JFrog"),
            {
                "kind": "apt_install",
                "name": "Installing JFrog Artifactory OSS...",
                "error": "Failed to install JFrog Artifactory OSS {version}",
                "packages": ["jfrog-artifactory-oss"],
                "pin": "{version}",
            },
            {
                "kind": "verify",
                "name": "Verifying JFrog installation...",
                "error": "JFrog installation verification failed",
                "path": "{jfrog_home}/artifactory",
            },
            start_enable("artifactory", "JFrog Artifactory"),
            running("artifactory", "JFrog Artifactory", wait=5),
            open_ports("JFrog", "{port}", 8082),
        ],
        "usage_title": "JFrog Artifactory Setup Information:",
        "usage": [
            "1. Access JFrog UI: http://localhost:{port} (or your server's IP)",
            "2. Default credentials: admin / password",
            "3. Service commands:",
            "   - Status: systemctl status artifactory",
            "   - Restart: systemctl restart artifactory",
            "   - Stop: systemctl stop artifactory",
            "4. Installation directory: {jfrog_home}/artifactory",
            "5. Logs: /var/opt/jfrog/artifactory/log/",
            "6. Next steps:",
            "   - Configure via UI or {jfrog_home}/artifactory/var/etc/system.yaml",
            "   - Secure with SSL: See https://jfrog.com/knowledge-base/how-to-configure-ssl-for-jfrog-artifactory/",
            "7. Documentation: https://jfrog.com/help/",
        ],
    },
}
