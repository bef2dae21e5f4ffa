"""
Languages and developer tools: git, python, nodejs, rust, maven.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import APT_CLEAN, APT_UPDATE, prerequisites

_NVM = {"var_equals": {"use_nvm": True}}
_NODESOURCE = {"var_equals": {"use_nvm": False}}

_GIT_CONFIG = """\
[user]
\tname = {git_name}
\temail = {git_email}
[core]
\teditor = nano
[init]
\tdefaultBranch = main
"""


DEVTOOLS_RECIPES: dict[str, dict] = {

    "git": {
        "label": "Git",
        "description": "Git from the Ubuntu archive with a starter ~/.gitconfig.",
        "category": "devtools",
        "vars": [
            {"name": "git_name", "default": "Your Name"},
            {"name": "git_email", "default": "your.email@example.com"},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing Git...",
                "error": "Failed to install Git",
                "packages": ["git"],
            },
            {
                "kind": "verify",
                "name": "Verifying Git installation...",
                "error": "Git installation verification failed",
                "binary": "git",
                "version_argv": ["git", "--version"],
                "fact": "git_version",
            },
            APT_CLEAN,
            {
                "kind": "write_file",
                "name": "Setting up basic Git configuration...",
                "error": "Failed to write Git configuration",
                "path": "{home}/.gitconfig",
                "owner": "{invoking_user}",
                "if_missing": True,
                "needs_root": False,
                "content": _GIT_CONFIG,
            },
            {
                "kind": "command",
                "name": "Testing Git installation...",
                "error": "Git test failed",
                "script": (
                    "rm -rf git-test && mkdir git-test && cd git-test"
                    " && git init -q"
                    " && echo 'Hello, Git!' > README.md"
                    " && git add README.md"
                    " && git -c user.name='{git_name}' -c user.email='{git_email}'"
                    " commit -m 'Initial commit' -q"
                    " && cd .. && rm -rf git-test"
                ),
                "needs_root": False,
            },
        ],
        "usage_title": "Git Setup Information:",
        "usage": [
            "1. Check Git version: git --version",
            "2. View config: git config --list",
            "3. Edit config: git config --global --edit",
            "4. Clone a repo: git clone <url>",
            "5. Configuration file: {home}/.gitconfig",
            "6. Documentation: https://git-scm.com/doc",
        ],
    },

    "python": {
        "label": "Python 3",
        "description": "Python 3, pip and development headers from the Ubuntu archive.",
        "category": "devtools",
        "aliases": ["python3"],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing Python 3, pip3, and development headers...",
                "error": "Failed to install Python",
                "packages": ["python3", "python3-pip", "python3-dev", "python-is-python3"],
            },
            APT_CLEAN,
            {
                "kind": "verify",
                "name": "Verifying Python installation...",
                "error": "Python installation verification failed",
                "binary": "python3",
                "version_argv": ["python3", "--version"],
                "fact": "python_version",
            },
            {
                "kind": "verify",
                "name": "Verifying pip installation...",
                "error": "pip installation verification failed",
                "binary": "pip3",
                "version_argv": ["pip3", "--version"],
                "fact": "pip_version",
            },
        ],
        "usage_title": "Python Setup Information:",
        "usage": [
            "1. Python version: {python_version}",
            "2. pip version: {pip_version}",
        ],
    },

    "nodejs": {
        "label": "Node.js",
        "description": "Node.js from NodeSource, or through nvm.",
        "category": "devtools",
        "aliases": ["node"],
        "vars": [
            {
                "name": "node_version",
                "default": "lts",
                "description": "'lts' or a major (NodeSource) / full version (nvm)",
            },
            {"name": "use_nvm", "default": False, "description": "Install through nvm instead of NodeSource"},
            {"name": "nvm_version", "default": "v0.39.7"},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "gnupg", "ca-certificates"),

            # nvm
            {
                "kind": "command",
                "name": "Installing NVM (Node Version Manager) {nvm_version}...",
                "error": "Failed to download and install NVM",
                "script": "curl -fsSL https://raw.githubusercontent.com/nvm-sh/nvm/{nvm_version}/install.sh | bash",
                "needs_root": False,
                "when": _NVM,
            },
            {
                "kind": "command",
                "name": "Installing Node.js version {node_version} via NVM...",
                "error": "Failed to install Node.js {node_version} with NVM",
                "script": (
                    'export NVM_DIR="$HOME/.nvm"; . "$NVM_DIR/nvm.sh"; '
                    'v="{node_version}"; [ "$v" = lts ] && v="lts/*"; '
                    'nvm install "$v" && nvm use "$v" && nvm alias default "$v"'
                ),
                "needs_root": False,
                "timeout": 900,
                "when": _NVM,
            },

            # NodeSource
            {
                "kind": "command",
                "name": "Setting up NodeSource repository for Node.js...",
                "error": "Failed to setup NodeSource repo for version {node_version}",
                "script": "curl -fsSL https://deb.nodesource.com/setup_{node_version}.x | bash -",
                "when": _NODESOURCE,
            },
            {
                "kind": "apt_install",
                "name": "Installing Node.js and npm...",
                "error": "Failed to install Node.js",
                "packages": ["nodejs"],
                "when": _NODESOURCE,
            },

            {
                "kind": "command",
                "name": "Verifying Node.js and npm installation...",
                "error": "Node.js installation verification failed",
                "script": (
                    '[ -s "$HOME/.nvm/nvm.sh" ] && . "$HOME/.nvm/nvm.sh"; '
                    'echo "node $(node -v) npm $(npm -v)"'
                ),
                "capture": "node_installed",
                "pattern": r"node v(\S+)",
                "needs_root": False,
            },
            APT_CLEAN,
        ],
        "usage_title": "Node.js Setup Information:",
        "usage": [
            "1. Node.js {node_installed} (nvm: {use_nvm})",
            "   - nvm: list versions with 'nvm ls', install with 'nvm install <version>'",
            "   - nvm: reload shell (source ~/.bashrc) or log out/in to use NVM",
            "   - NodeSource: update npm (optional) with 'npm install -g npm'",
            "2. Check Node.js version: node -v",
            "3. Check npm version: npm -v",
            "4. Test Node.js: node -e \"console.log('Hello, Node.js!')\"",
            "5. Documentation: https://nodejs.org/en/docs/",
        ],
    },

    "rust": {
        "label": "Rust",
        "description": "Rust toolchain for the current user through rustup.",
        "category": "devtools",
        "privilege": "user",
        "vars": [
            {
                "name": "toolchain",
                "default": "stable",
                "description": "stable, beta, nightly or a version like 1.75.0",
            },
            {"name": "rustup_url", "default": "https://sh.rustup.rs"},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "build-essential", "gcc", "make"),
            {
                "kind": "download",
                "name": "Downloading rustup installer...",
                "error": "Failed to download rustup installer",
                "url": "{rustup_url}",
                "dest": "{work_dir}/rustup-init.sh",
                "mode": "755",
                "needs_root": False,
            },
            {
                "kind": "command",
                "name": "Installing Rust toolchain: {toolchain}...",
                "error": "Failed to install Rust via rustup",
                "argv": ["{work_dir}/rustup-init.sh", "-y", "--default-toolchain", "{toolchain}"],
                "needs_root": False,
                "timeout": 1800,
            },
            {
                "kind": "verify",
                "name": "Verifying Rust installation...",
                "error": "Rust installation verification failed",
                "binary": "rustc",
                "version_argv": ["rustc", "--version"],
                "fact": "rustc_version",
            },
            {
                "kind": "verify",
                "name": "Verifying Cargo installation...",
                "error": "Cargo installation verification failed",
                "binary": "cargo",
                "version_argv": ["cargo", "--version"],
                "fact": "cargo_version",
            },
            APT_CLEAN,
            {
                "kind": "append_line",
                "name": "Ensuring Rust environment in shell config...",
                "error": "Failed to update .bashrc",
                "path": "{home}/.bashrc",
                "line": "source $HOME/.cargo/env",
                "marker": ".cargo/env",
                "needs_root": False,
            },
        ],
        "usage_title": "Rust Setup Information:",
        "usage": [
            "1. Check Rust version: rustc --version",
            "2. Check Cargo version: cargo --version",
            "3. Create new project: cargo new <project-name>",
            "4. Update Rust: rustup update",
            "5. Switch toolchain: rustup default <toolchain> (e.g., nightly)",
            "6. Reload shell: source ~/.bashrc or log out/in to ensure PATH is updated",
            "7. Documentation: https://www.rust-lang.org/learn",
        ],
    },

    "maven": {
        "label": "Apache Maven",
        "description": "Maven from the Apache binary archive on OpenJDK 11.",
        "category": "devtools",
        "vars": [
            {"name": "version", "default": "3.9.9", "description": "Maven release"},
            {"name": "install_dir", "default": "/opt/maven"},
        ],
        "steps": [
            APT_UPDATE,
            {"kind": "include", "fragment": "openjdk_11_jdk"},
            {
                "kind": "archive",
                "name": "Downloading Maven {version}...",
                "error": "Failed to install Maven",
                "url": (
                    "https://dlcdn.apache.org/maven/maven-3/{version}/binaries/"
                    "apache-maven-{version}-bin.tar.gz"
                ),
                "install": {"apache-maven-{version}": "{install_dir}"},
            },
            {
                "kind": "write_file",
                "name": "Configuring Maven environment variables...",
                "error": "Failed to write /etc/profile.d/maven.sh",
                "path": "/etc/profile.d/maven.sh",
                "mode": "755",
                "content": (
                    "export JAVA_HOME=/usr/lib/jvm/java-11-openjdk-{arch}\n"
                    "export MAVEN_HOME={install_dir}\n"
                    "export PATH=$PATH:$MAVEN_HOME/bin\n"
                ),
            },
            {
                "kind": "verify",
                "name": "Verifying Maven installation...",
                "error": "Maven installation verification failed",
                "binary": "{install_dir}/bin/mvn",
                "version_argv": ["{install_dir}/bin/mvn", "-version"],
                "version_pattern": r"Apache Maven (\S+)",
                "fact": "maven_version",
            },
            APT_CLEAN,
            {
                "kind": "command",
                "name": "Testing Maven with a sample project...",
                "error": "Failed to build Maven test project",
                "script": (
                    "rm -rf maven-test && mkdir maven-test && cd maven-test"
                    " && {install_dir}/bin/mvn archetype:generate -DgroupId=com.test"
                    " -DartifactId=test-app -DarchetypeArtifactId=maven-archetype-quickstart"
                    " -DinteractiveMode=false -q"
                    " && cd test-app && {install_dir}/bin/mvn package -q"
                    " && cd ../.. && rm -rf maven-test"
                ),
                "env": {"JAVA_HOME": "/usr/lib/jvm/java-11-openjdk-{arch}"},
                "needs_root": False,
                "timeout": 1800,
            },
        ],
        "usage_title": "Maven Setup Information:",
        "usage": [
            "1. Check Maven version: mvn -version",
            "2. Create new project: mvn archetype:generate",
            "3. Build a project: mvn package",
            "4. Installation directory: {install_dir}",
            "5. Environment config: /etc/profile.d/maven.sh",
            "6. Reload shell: source /etc/profile.d/maven.sh (or log out/in)",
            "7. Documentation: https://maven.apache.org/guides/",
        ],
    },
}
