"""
Databases and data stores: mysql, redis.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import (
    APT_CLEAN,
    APT_UPDATE,
    open_ports,
    running,
    start_enable,
)

_SECURE_MYSQL_SQL = (
    "DELETE FROM mysql.user WHERE User='';\n"
    "DROP USER IF EXISTS ''@'localhost';\n"
    "DROP USER IF EXISTS ''@'{hostname}';\n"
    "DELETE FROM mysql.user WHERE User='root' AND Host NOT IN ('localhost', '127.0.0.1', '::1');\n"
    "DROP DATABASE IF EXISTS test;\n"
    "DELETE FROM mysql.db WHERE Db='test' OR Db='test\\_%';\n"
    "FLUSH PRIVILEGES;\n"
)

_MYSQL_SMOKE_SQL = (
    "CREATE DATABASE IF NOT EXISTS test_db;\n"
    "USE test_db;\n"
    "CREATE TABLE test_table (id INT AUTO_INCREMENT PRIMARY KEY, name VARCHAR(50));\n"
    "INSERT INTO test_table (name) VALUES ('Test Entry');\n"
    "SELECT * FROM test_table;\n"
    "DROP DATABASE test_db;\n"
)

_REDIS_UNIT = (
    "[Unit]\n"
    "Description=Redis In-Memory Data Structure Store\n"
    "After=network.target\n"
    "\n"
    "[Service]\n"
    "ExecStart=/usr/local/bin/redis-server {config_file}\n"
    "ExecStop=/usr/local/bin/redis-cli shutdown\n"
    "Restart=always\n"
    "User=redis\n"
    "Group=redis\n"
    "RuntimeDirectory=redis\n"
    "RuntimeDirectoryMode=2755\n"
    "\n"
    "[Install]\n"
    "WantedBy=multi-user.target\n"
)

_FROM_SOURCE = {"var_equals": {"install_method": "source"}}


DATABASE_RECIPES: dict[str, dict] = {

    "mysql": {
        "label": "MySQL Server",
        "description": "MySQL server with a root password, hardening and a smoke test.",
        "category": "data",
        "services": ["mysql"],
        "vars": [
            {
                "name": "root_password",
                "default": "root_password",
                "description": "Password set for root@localhost (change it in production)",
            },
            {"name": "port", "default": 3306},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing MySQL Server...",
                "error": "Failed to install MySQL",
                "packages": ["mysql-server"],
            },
            start_enable("mysql", "MySQL"),
            running("mysql", "MySQL"),
            {
                "kind": "verify",
                "name": "Verifying MySQL installation...",
                "error": "MySQL installation verification failed",
                "binary": "mysql",
                "version_argv": ["mysql", "--version"],
                "fact": "mysql_version",
            },
            {
                "kind": "command",
                "name": "Setting MySQL root password...",
                "error": "Failed to set MySQL root password",
                "argv": [
                    "mysql", "-e",
                    "ALTER USER 'root'@'localhost' IDENTIFIED WITH "
                    "mysql_native_password BY '{root_password}';",
                ],
            },
            {
                "kind": "command",
                "name": "Securing MySQL installation...",
                "error": "Failed to secure MySQL",
                "argv": ["mysql", "-u", "root", "-p{root_password}"],
                "input": _SECURE_MYSQL_SQL,
            },
            {
                "kind": "command",
                "name": "Testing MySQL with a sample database...",
                "error": "Failed to create test database",
                "argv": ["mysql", "-u", "root", "-p{root_password}"],
                "input": _MYSQL_SMOKE_SQL,
                "expect": "Test Entry",
            },
            open_ports("MySQL", "{port}"),
            APT_CLEAN,
        ],
        "usage_title": "MySQL Setup Information:",
        "usage": [
            "1. Connect to MySQL: mysql -u root -p",
            "2. Root password: {root_password} (change it in production)",
            "3. Service commands:",
            "   - Status: systemctl status mysql",
            "   - Restart: systemctl restart mysql",
            "   - Stop: systemctl stop mysql",
            "4. Configuration file: /etc/mysql/my.cnf",
            "5. Data directory: /var/lib/mysql",
            "6. Documentation: https://dev.mysql.com/doc/",
        ],
    },

    "redis": {
        "label": "Redis",
        "description": "Redis from the Ubuntu repository or built from a release tag.",
        "category": "data",
        "services": ["redis"],
        "vars": [
            {
                "name": "install_method",
                "default": "repo",
                "choices": ["repo", "source"],
                "description": "repo (apt redis-server) or source (build a GitHub release)",
            },
            {
                "name": "version",
                "default": "latest",
                "description": "Release tag for source builds, or 'latest'",
            },
            {"name": "port", "default": 6379},
            {"name": "config_file", "default": "/etc/redis/redis.conf"},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing Redis from Ubuntu repository...",
                "error": "Failed to install Redis",
                "packages": ["redis-server"],
                "when": {"var_equals": {"install_method": "repo"}},
            },

            # Source build
            {
                "kind": "apt_install",
                "name": "Installing build prerequisites...",
                "error": "Failed to install build prerequisites",
                "packages": ["build-essential", "tcl", "curl"],
                "when": _FROM_SOURCE,
            },
            {
                "kind": "github_release",
                "name": "Resolving the latest Redis release...",
                "error": "Failed to resolve the latest Redis release",
                "repo": "redis/redis",
                "when": {"var_equals": {"install_method": "source", "version": "latest"}},
            },
            {
                "kind": "archive",
                "name": "Downloading Redis {version} source...",
                "error": "Failed to download Redis source",
                "url": "https://github.com/redis/redis/archive/{version}.tar.gz",
                "format": "tar.gz",
                "extract_dir": "redis-src",
                "needs_root": False,
                "when": _FROM_SOURCE,
            },
            {
                "kind": "command",
                "name": "Building Redis {version}...",
                "error": "Failed to build Redis",
                "argv": ["make", "-j{nproc}"],
                "cwd": "{archive_dir}/redis-{version}",
                "needs_root": False,
                "timeout": 1800,
                "when": _FROM_SOURCE,
            },
            {
                "kind": "command",
                "name": "Installing Redis binaries...",
                "error": "Failed to install Redis",
                "argv": ["make", "install"],
                "cwd": "{archive_dir}/redis-{version}",
                "when": _FROM_SOURCE,
            },
            {
                "kind": "directory",
                "name": "Creating Redis directories...",
                "error": "Failed to create Redis directories",
                "paths": ["/etc/redis", "/var/redis"],
                "when": _FROM_SOURCE,
            },
            {
                "kind": "command",
                "name": "Copying default Redis config...",
                "error": "Failed to copy Redis config",
                "argv": ["cp", "{archive_dir}/redis-{version}/redis.conf", "{config_file}"],
                "when": _FROM_SOURCE,
            },
            {
                "kind": "system_user",
                "name": "Creating Redis system user...",
                "error": "Failed to create Redis user",
                "user": "redis",
                "when": _FROM_SOURCE,
            },
            {
                "kind": "command",
                "name": "Setting Redis permissions...",
                "error": "Failed to set Redis permissions",
                "script": "chown redis:redis {config_file} /var/redis && chmod 640 {config_file}",
                "when": _FROM_SOURCE,
            },
            {
                "kind": "write_file",
                "name": "Creating Redis systemd service...",
                "error": "Failed to create Redis service",
                "path": "/etc/systemd/system/redis.service",
                "content": _REDIS_UNIT,
                "when": _FROM_SOURCE,
            },
            {
                "kind": "service",
                "name": "Reloading systemd...",
                "error": "Failed to reload systemd",
                "actions": ["daemon-reload"],
                "when": _FROM_SOURCE,
            },

            # Both methods
            {
                "kind": "edit_file",
                "name": "Configuring Redis...",
                "error": "Failed to configure Redis",
                "path": "{config_file}",
                "substitutions": [
                    {"pattern": r"^supervised no", "replacement": "supervised systemd"},
                    {"pattern": r"^port .*", "replacement": "port {port}"},
                    {"pattern": r"^bind 127\.0\.0\.1 ::1", "replacement": "bind 127.0.0.1"},
                ],
            },
            start_enable("redis", "Redis"),
            running("redis", "Redis"),
            {
                "kind": "verify",
                "name": "Verifying Redis installation...",
                "error": "Redis installation verification failed",
                "binary": "redis-server",
                "version_argv": ["redis-server", "--version"],
                "version_pattern": r"v=(\S+)",
                "fact": "redis_version",
            },
            {
                "kind": "command",
                "name": "Testing Redis with a ping...",
                "error": "Redis ping test failed",
                "argv": ["redis-cli", "-p", "{port}", "ping"],
                "expect": "PONG",
                "needs_root": False,
            },
            open_ports("Redis", "{port}"),
            APT_CLEAN,
        ],
        "usage_title": "Redis Setup Information:",
        "usage": [
            "1. Check Redis version: redis-server --version",
            "2. Connect to Redis: redis-cli -p {port}",
            "3. Service commands:",
            "   - Status: systemctl status redis",
            "   - Restart: systemctl restart redis",
            "   - Stop: systemctl stop redis",
            "4. Configuration file: {config_file}",
            "5. Data directory: /var/lib/redis (repo) or /var/redis (source)",
            "6. Documentation: https://redis.io/documentation",
        ],
    },
}
