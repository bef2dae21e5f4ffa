"""
Web servers and application containers: nginx, apache, tomcat.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import (
    APT_UPDATE,
    java_verify,
    open_ports,
    prerequisites,
    running,
    start_enable,
)


def _test_page(server: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        f"    <title>Welcome to {server}</title>\n"
        "</head>\n"
        "<body>\n"
        f"    <h1>{server} Installed Successfully!</h1>\n"
        f"    <p>This is a test page served by {server} on Ubuntu.</p>\n"
        "</body>\n"
        "</html>\n"
    )


WEB_RECIPES: dict[str, dict] = {

    "nginx": {
        "label": "Nginx",
        "description": "Nginx web server with a default site and a test page.",
        "category": "web",
        "services": ["nginx"],
        "vars": [
            {"name": "port", "default": 80, "description": "HTTP listen port"},
            {"name": "default_site", "default": "/etc/nginx/sites-available/default"},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing Nginx...",
                "error": "Failed to install Nginx",
                "packages": ["nginx"],
            },
            start_enable("nginx", "Nginx"),
            running("nginx", "Nginx"),
            {
                "kind": "verify",
                "name": "Verifying Nginx installation...",
                "error": "Nginx installation verification failed",
                "binary": "nginx",
                "version_argv": ["nginx", "-v"],
                "version_pattern": r"nginx version: (\S+)",
                "fact": "nginx_version",
            },
            {
                "kind": "write_file",
                "name": "Configuring basic Nginx settings...",
                "error": "Default Nginx site configuration not found",
                "path": "{default_site}",
                "backup": True,
                "require_existing": True,
                "content": (
                    "server {\n"
                    "    listen {port} default_server;\n"
                    "    listen [::]:{port} default_server;\n"
                    "\n"
                    "    server_name _;\n"
                    "\n"
                    "    root /var/www/html;\n"
                    "    index index.html index.htm;\n"
                    "\n"
                    "    location / {\n"
                    "        try_files $uri $uri/ =404;\n"
                    "    }\n"
                    "}\n"
                ),
            },
            {
                "kind": "command",
                "name": "Testing Nginx configuration...",
                "error": "Nginx configuration test failed",
                "argv": ["nginx", "-t"],
            },
            {
                "kind": "service",
                "name": "Reloading Nginx...",
                "error": "Failed to reload Nginx",
                "service": "nginx",
                "actions": ["reload"],
            },
            {
                "kind": "write_file",
                "name": "Creating test HTML page...",
                "error": "Failed to create test page",
                "path": "/var/www/html/index.html",
                "owner": "www-data:www-data",
                "content": _test_page("Nginx"),
            },
            open_ports("Nginx", "{port}"),
        ],
        "usage_title": "Nginx Setup Information:",
        "usage": [
            "1. Access test page: http://localhost:{port} (or your server's IP)",
            "2. Service commands:",
            "   - Status: systemctl status nginx",
            "   - Restart: systemctl restart nginx",
            "   - Reload: systemctl reload nginx",
            "3. Configuration files:",
            "   - Main config: /etc/nginx/nginx.conf",
            "   - Default site: {default_site}",
            "4. Web root: /var/www/html",
            "5. Logs:",
            "   - Access: /var/log/nginx/access.log",
            "   - Error: /var/log/nginx/error.log",
        ],
    },

    "apache": {
        "label": "Apache HTTP Server",
        "description": "Apache2 with the default virtual host and a test page.",
        "category": "web",
        "aliases": ["apache2"],
        "services": ["apache2"],
        "vars": [
            {"name": "port", "default": 80, "description": "HTTP port opened in the firewall"},
            {"name": "default_site", "default": "/etc/apache2/sites-available/000-default.conf"},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing Apache...",
                "error": "Failed to install Apache",
                "packages": ["apache2"],
            },
            start_enable("apache2", "Apache"),
            running("apache2", "Apache"),
            {
                "kind": "verify",
                "name": "Verifying Apache installation...",
                "error": "Apache installation verification failed",
                "binary": "apache2",
                "version_argv": ["apache2", "-v"],
                "version_pattern": r"Server version: (\S+)",
                "fact": "apache_version",
            },
            {
                "kind": "write_file",
                "name": "Configuring basic Apache settings...",
                "error": "Default Apache site configuration not found",
                "path": "{default_site}",
                "backup": True,
                "require_existing": True,
                "content": (
                    "<VirtualHost *:80>\n"
                    "    ServerAdmin webmaster@localhost\n"
                    "    DocumentRoot /var/www/html\n"
                    "    ErrorLog ${APACHE_LOG_DIR}/error.log\n"
                    "    CustomLog ${APACHE_LOG_DIR}/access.log combined\n"
                    "</VirtualHost>\n"
                ),
            },
            {
                "kind": "command",
                "name": "Testing Apache configuration...",
                "error": "Apache configuration test failed",
                "argv": ["apache2ctl", "configtest"],
            },
            {
                "kind": "service",
                "name": "Reloading Apache...",
                "error": "Failed to reload Apache",
                "service": "apache2",
                "actions": ["reload"],
            },
            {
                "kind": "write_file",
                "name": "Creating test HTML page...",
                "error": "Failed to create test page",
                "path": "/var/www/html/index.html",
                "owner": "www-data:www-data",
                "content": _test_page("Apache"),
            },
            open_ports("Apache", "{port}", "Apache Full"),
        ],
        "usage_title": "Apache Setup Information:",
        "usage": [
            "1. Access test page: http://localhost:{port} (or your server's IP)",
            "2. Service commands:",
            "   - Status: systemctl status apache2",
            "   - Restart: systemctl restart apache2",
            "   - Reload: systemctl reload apache2",
            "3. Configuration files:",
            "   - Main config: /etc/apache2/apache2.conf",
            "   - Default site: {default_site}",
            "4. Web root: /var/www/html",
            "5. Logs:",
            "   - Access: /var/log/apache2/access.log",
            "   - Error: /var/log/apache2/error.log",
        ],
    },

    "tomcat": {
        "label": "Apache Tomcat",
        "description": "Tomcat 10 from the Apache release archive, run by systemd.",
        "category": "web",
        "services": ["tomcat"],
        "vars": [
            {"name": "version", "default": "10.1.31", "description": "Tomcat 10 release"},
            {"name": "install_dir", "default": "/opt/tomcat"},
            {"name": "port", "default": 8080},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("openjdk-11-jre", "curl"),
            java_verify(),
            {
                "kind": "system_user",
                "name": "Creating Tomcat system user...",
                "error": "Failed to create Tomcat user",
                "user": "tomcat",
                "create_home": True,
            },
            {
                "kind": "archive",
                "name": "Downloading Tomcat {version}...",
                "error": "Failed to install Tomcat",
                "url": (
                    "https://dlcdn.apache.org/tomcat/tomcat-10/v{version}/bin/"
                    "apache-tomcat-{version}.tar.gz"
                ),
                "install": {"apache-tomcat-{version}": "{install_dir}"},
            },
            {
                "kind": "directory",
                "name": "Setting Tomcat permissions...",
                "error": "Failed to set Tomcat permissions",
                "paths": ["{install_dir}"],
                "owner": "tomcat:tomcat",
            },
            {
                "kind": "write_file",
                "name": "Creating Tomcat service...",
                "error": "Failed to create Tomcat service",
                "path": "/etc/systemd/system/tomcat.service",
                "content": (
                    "[Unit]\n"
                    "Description=Apache Tomcat Web Application Container\n"
                    "After=network.target\n"
                    "\n"
                    "[Service]\n"
                    "Type=forking\n"
                    "User=tomcat\n"
                    "Group=tomcat\n"
                    'Environment="JAVA_HOME=/usr/lib/jvm/java-11-openjdk-{arch}"\n'
                    'Environment="CATALINA_PID={install_dir}/temp/tomcat.pid"\n'
                    'Environment="CATALINA_HOME={install_dir}"\n'
                    'Environment="CATALINA_BASE={install_dir}"\n'
                    "ExecStart={install_dir}/bin/startup.sh\n"
                    "ExecStop={install_dir}/bin/shutdown.sh\n"
                    "Restart=on-failure\n"
                    "\n"
                    "[Install]\n"
                    "WantedBy=multi-user.target\n"
                ),
            },
            start_enable("tomcat", "Tomcat", reload=True),
            running("tomcat", "Tomcat", wait=5),
            open_ports("Tomcat", "{port}"),
        ],
        "usage_title": "Tomcat Setup Information:",
        "usage": [
            "1. Access Tomcat at: http://localhost:{port} (or your server's IP)",
            "2. Service commands:",
            "   - Status: systemctl status tomcat",
            "   - Restart: systemctl restart tomcat",
            "3. Installation directory: {install_dir}",
            "4. Logs: {install_dir}/logs",
            "5. Default credentials for manager app (optional): edit {install_dir}/conf/tomcat-users.xml",
        ],
    },
}
