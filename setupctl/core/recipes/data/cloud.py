"""
Cloud provider tooling: aws-cli, azure-cli, gcp-cli, eksctl, boto3.

These recipes may run without root. As a regular user they install
into the home directory (``user_vars``); package steps still go
through sudo.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import (
    APT_CLEAN,
    APT_UPDATE,
    apt_update_with,
    prerequisites,
)

MICROSOFT_KEYRING = "/usr/share/keyrings/microsoft-archive-keyring.gpg"
GOOGLE_KEYRING = "/usr/share/keyrings/google-cloud-sdk-archive-keyring.gpg"

_AS_ROOT = {"as_root": True}
_AS_USER = {"as_root": False}


def _user_path_line(bin_dir: str) -> dict:
    return {
        "kind": "append_line",
        "name": "Updating PATH for current user...",
        "error": "Failed to update PATH in .bashrc",
        "path": "{home}/.bashrc",
        "line": f"export PATH=$PATH:{bin_dir}",
        "marker": bin_dir,
        "needs_root": False,
        "when": _AS_USER,
    }


CLOUD_RECIPES: dict[str, dict] = {

    "aws-cli": {
        "label": "AWS CLI v2",
        "description": "AWS CLI v2 from the official bundle, system-wide or per user.",
        "category": "cloud",
        "privilege": "any",
        "vars": [
            {"name": "install_dir", "default": "/usr/local/aws-cli"},
            {"name": "bin_dir", "default": "/usr/local/bin"},
            {"name": "region", "default": "us-east-1", "description": "Region written to ~/.aws/config"},
        ],
        "user_vars": {
            "install_dir": "{home}/.aws-cli",
            "bin_dir": "{home}/bin",
        },
        "steps": [
            APT_UPDATE,
            prerequisites("unzip", "curl"),
            {
                "kind": "archive",
                "name": "Downloading AWS CLI v2...",
                "error": "Failed to download AWS CLI",
                "url": "https://awscli.amazonaws.com/awscli-exe-linux-{machine}.zip",
                "format": "zip",
                "needs_root": False,
            },
            {
                "kind": "command",
                "name": "Installing AWS CLI system-wide...",
                "error": "Failed to install AWS CLI system-wide",
                "argv": [
                    "{archive_dir}/aws/install",
                    "--bin-dir", "{bin_dir}",
                    "--install-dir", "{install_dir}",
                    "--update",
                ],
                "when": _AS_ROOT,
            },
            {
                "kind": "command",
                "name": "Installing AWS CLI for current user...",
                "error": "Failed to install AWS CLI for current user",
                "argv": [
                    "{archive_dir}/aws/install",
                    "--bin-dir", "{bin_dir}",
                    "--install-dir", "{install_dir}",
                    "--update",
                ],
                "needs_root": False,
                "when": _AS_USER,
            },
            {
                "kind": "verify",
                "name": "Verifying AWS CLI installation...",
                "error": "AWS CLI installation verification failed",
                "binary": "aws",
                "version_argv": ["aws", "--version"],
                "version_pattern": r"aws-cli/(\S+)",
                "fact": "aws_cli_version",
            },
            _user_path_line("{bin_dir}"),
            {
                "kind": "directory",
                "name": "Setting up AWS configuration directory...",
                "error": "Failed to create AWS config directory",
                "paths": ["{home}/.aws"],
                "owner": "{invoking_user}",
                "needs_root": False,
                "when": {"unless_path": "{home}/.aws"},
            },
            {
                "kind": "write_file",
                "name": "Creating basic AWS config...",
                "error": "Failed to write AWS config",
                "path": "{home}/.aws/config",
                "mode": "600",
                "owner": "{invoking_user}",
                "if_missing": True,
                "needs_root": False,
                "content": "[default]\nregion = {region}\noutput = json\n",
            },
            {
                "kind": "write_file",
                "name": "Creating placeholder AWS credentials...",
                "error": "Failed to write AWS credentials",
                "path": "{home}/.aws/credentials",
                "mode": "600",
                "owner": "{invoking_user}",
                "if_missing": True,
                "needs_root": False,
                "content": (
                    "[default]\n"
                    "aws_access_key_id = YOUR_ACCESS_KEY\n"
                    "aws_secret_access_key = YOUR_SECRET_KEY\n"
                ),
            },
        ],
        "usage_title": "AWS CLI Setup Information:",
        "usage": [
            "1. Configure AWS CLI: aws configure",
            "2. Check version: aws --version",
            "3. Test AWS CLI: aws sts get-caller-identity (after configuration)",
            "4. Configuration files:",
            "   - Config: {home}/.aws/config",
            "   - Credentials: {home}/.aws/credentials",
            "5. Documentation: https://awscli.amazonaws.com/v2/documentation/api/latest/index.html",
            "6. User installs: run 'source ~/.bashrc' to put {bin_dir} on PATH",
        ],
    },

    "azure-cli": {
        "label": "Azure CLI",
        "description": "Azure CLI from the Microsoft apt repository.",
        "category": "cloud",
        "privilege": "any",
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "apt-transport-https", "ca-certificates", "gnupg", "lsb-release"),
            {
                "kind": "apt_repo",
                "name": "Adding Azure CLI repository...",
                "error": "Failed to add Azure CLI repository",
                "key_url": "https://packages.microsoft.com/keys/microsoft.asc",
                "keyring": MICROSOFT_KEYRING,
                "source": (
                    f"deb [arch={{arch}} signed-by={MICROSOFT_KEYRING}] "
                    "https://packages.microsoft.com/repos/azure-cli/ {codename} main"
                ),
                "list_file": "/etc/apt/sources.list.d/azure-cli.list",
            },
            apt_update_with("Azure CLI"),
            {
                "kind": "apt_install",
                "name": "Installing Azure CLI...",
                "error": "Failed to install Azure CLI",
                "packages": ["azure-cli"],
            },
            {
                "kind": "verify",
                "name": "Verifying Azure CLI installation...",
                "error": "Azure CLI installation verification failed",
                "binary": "az",
                "version_argv": ["az", "--version"],
                "first_line": True,
                "fact": "azure_cli_version",
            },
            {
                "kind": "write_file",
                "name": "Setting up Azure configuration directory...",
                "error": "Failed to create Azure config",
                "path": "{home}/.azure/config",
                "owner": "{invoking_user}",
                "if_missing": True,
                "needs_root": False,
                "content": "[core]\noutput = json\n",
                "when": {"unless_path": "{home}/.azure"},
            },
        ],
        "usage_title": "Azure CLI Setup Information:",
        "usage": [
            "1. Login: az login",
            "2. Check version: az --version",
            "3. Test after login: az account show",
            "4. Configuration file: {home}/.azure/config",
            "5. Common commands:",
            "   - List subscriptions: az account list",
            "   - Set subscription: az account set --subscription <id>",
            "6. Documentation: https://learn.microsoft.com/en-us/cli/azure/",
        ],
    },

    "gcp-cli": {
        "label": "Google Cloud SDK",
        "description": "gcloud from the Google Cloud apt repository.",
        "category": "cloud",
        "privilege": "any",
        "aliases": ["gcloud"],
        "steps": [
            APT_UPDATE,
            prerequisites("apt-transport-https", "ca-certificates", "gnupg", "curl"),
            {
                "kind": "apt_repo",
                "name": "Adding Google Cloud SDK repository...",
                "error": "Failed to add Google Cloud SDK repository",
                "key_url": "https://packages.cloud.google.com/apt/doc/apt-key.gpg",
                "keyring": GOOGLE_KEYRING,
                "source": f"deb [signed-by={GOOGLE_KEYRING}] https://packages.cloud.google.com/apt cloud-sdk main",
                "list_file": "/etc/apt/sources.list.d/google-cloud-sdk.list",
            },
            apt_update_with("Google Cloud SDK"),
            {
                "kind": "apt_install",
                "name": "Installing Google Cloud SDK...",
                "error": "Failed to install Google Cloud SDK",
                "packages": ["google-cloud-sdk"],
            },
            {
                "kind": "verify",
                "name": "Verifying Google Cloud SDK installation...",
                "error": "Google Cloud SDK installation verification failed",
                "binary": "gcloud",
                "version_argv": ["gcloud", "version"],
                "first_line": True,
                "fact": "gcloud_version",
            },
            {
                "kind": "command",
                "name": "Setting up basic gcloud configuration...",
                "error": "Initial setup requires interactive login; run 'gcloud init' manually",
                "argv": ["gcloud", "init", "--skip-diagnostics", "--no-browser", "--quiet"],
                "needs_root": False,
                "ignore_errors": True,
                "when": {"unless_path": "{home}/.config/gcloud"},
            },
        ],
        "usage_title": "Google Cloud SDK Setup Information:",
        "usage": [
            "1. Initialize and login: gcloud init",
            "2. Authenticate: gcloud auth login",
            "3. Check version: gcloud version",
            "4. Test after login: gcloud auth list",
            "5. Configuration directory: {home}/.config/gcloud",
            "6. Common commands:",
            "   - List projects: gcloud projects list",
            "   - Set project: gcloud config set project <project-id>",
            "7. Documentation: https://cloud.google.com/sdk/docs/",
        ],
    },

    "eksctl": {
        "label": "eksctl",
        "description": "eksctl release binary, system-wide or into ~/bin.",
        "category": "cloud",
        "privilege": "any",
        "vars": [
            {"name": "version", "default": "latest", "description": "'latest' or a release tag like v0.197.0"},
            {"name": "install_dir", "default": "/usr/local/bin"},
            {"name": "test_output", "default": "/tmp/eksctl_test_output.txt"},
        ],
        "user_vars": {"install_dir": "{home}/bin"},
        "steps": [
            APT_UPDATE,
            prerequisites("curl", "tar"),
            {
                "kind": "github_release",
                "name": "Resolving the latest eksctl release...",
                "error": "Failed to resolve the latest eksctl release",
                "repo": "weaveworks/eksctl",
                "when": {"var_equals": {"version": "latest"}},
            },
            {
                "kind": "archive",
                "name": "Installing eksctl {version}...",
                "error": "Failed to install eksctl",
                "url": (
                    "https://github.com/weaveworks/eksctl/releases/download/"
                    "{version}/eksctl_Linux_{arch}.tar.gz"
                ),
                "extract_dir": "eksctl",
                "install": {"eksctl": "{install_dir}/eksctl"},
                "when": _AS_ROOT,
            },
            {
                "kind": "archive",
                "name": "Installing eksctl {version} into {install_dir}...",
                "error": "Failed to install eksctl",
                "url": (
                    "https://github.com/weaveworks/eksctl/releases/download/"
                    "{version}/eksctl_Linux_{arch}.tar.gz"
                ),
                "extract_dir": "eksctl",
                "install": {"eksctl": "{install_dir}/eksctl"},
                "needs_root": False,
                "when": _AS_USER,
            },
            _user_path_line("{install_dir}"),
            {
                "kind": "verify",
                "name": "Verifying eksctl installation...",
                "error": "eksctl installation verification failed",
                "binary": "eksctl",
                "version_argv": ["eksctl", "version"],
                "fact": "eksctl_version",
            },
            APT_CLEAN,
            {
                "kind": "command",
                "name": "Testing eksctl with a version check...",
                "error": "Failed to run eksctl test",
                "argv": ["eksctl", "version"],
                "output_file": "{test_output}",
                "env": {"PATH": "{install_dir}:/usr/local/bin:/usr/bin:/bin"},
                "needs_root": False,
            },
        ],
        "usage_title": "eksctl Setup Information:",
        "usage": [
            "1. Check eksctl version: eksctl version",
            "2. Configure AWS credentials: aws configure (requires AWS CLI)",
            "3. Create an EKS cluster: eksctl create cluster --name my-cluster --region us-west-2",
            "4. Installation directory: {install_dir}",
            "5. User installs: source ~/.bashrc (or log out/in) to update PATH",
            "6. Documentation: https://eksctl.io/",
        ],
    },

    "boto3": {
        "label": "Boto3",
        "description": "The AWS SDK for Python, system-wide or in a virtualenv.",
        "category": "cloud",
        "privilege": "any",
        "vars": [
            {"name": "version", "default": "latest", "description": "'latest' or a version like 1.35.38"},
            {"name": "use_venv", "default": False, "description": "Install into a virtualenv"},
            {"name": "venv_dir", "default": "{home}/boto3-venv"},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing Python 3 and pip...",
                "error": "Failed to install Python and pip",
                "packages": ["python3", "python3-pip", "python3-dev", "python-is-python3"],
            },
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

            # virtualenv
            {
                "kind": "apt_install",
                "name": "Installing virtualenv...",
                "error": "Failed to install virtualenv",
                "packages": ["python3-venv"],
                "when": {"var_equals": {"use_venv": True}},
            },
            {
                "kind": "command",
                "name": "Creating virtual environment at {venv_dir}...",
                "error": "Failed to create virtual environment",
                "argv": ["python3", "-m", "venv", "{venv_dir}"],
                "needs_root": False,
                "when": {"var_equals": {"use_venv": True}},
            },
            {
                "kind": "command",
                "name": "Installing Boto3 into {venv_dir}...",
                "error": "Failed to install Boto3 {version}",
                "script": (
                    'spec=boto3; [ "{version}" = latest ] || spec="boto3=={version}"; '
                    '"{venv_dir}/bin/pip" install "$spec"'
                ),
                "needs_root": False,
                "when": {"var_equals": {"use_venv": True}},
            },

            # system-wide
            {
                "kind": "command",
                "name": "Installing Boto3...",
                "error": "Failed to install Boto3 {version}",
                "script": (
                    'spec=boto3; [ "{version}" = latest ] || spec="boto3=={version}"; '
                    'pip3 install "$spec"'
                ),
                "when": {"var_equals": {"use_venv": False}},
            },

            {
                "kind": "command",
                "name": "Verifying Boto3 installation...",
                "error": "Boto3 installation verification failed",
                "script": (
                    'py=python3; [ "{use_venv}" = true ] && py="{venv_dir}/bin/python"; '
                    '"$py" -c "import boto3; print(boto3.__version__)"'
                ),
                "capture": "boto3_version",
                "needs_root": False,
            },
            APT_CLEAN,
            {
                "kind": "write_file",
                "name": "Creating a test script for Boto3...",
                "error": "Failed to write the Boto3 test script",
                "path": "{work_dir}/test_boto3.py",
                "needs_root": False,
                "content": (
                    "import boto3\n"
                    'print("Boto3 is working!")\n'
                    "# Uncomment and configure with credentials to test AWS connectivity\n"
                    "# s3 = boto3.client('s3')\n"
                    "# print(s3.list_buckets())\n"
                ),
            },
            {
                "kind": "command",
                "name": "Running the Boto3 test script...",
                "error": "Failed to run Boto3 test script",
                "script": (
                    'py=python3; [ "{use_venv}" = true ] && py="{venv_dir}/bin/python"; '
                    '"$py" "{work_dir}/test_boto3.py"'
                ),
                "expect": "Boto3 is working!",
                "needs_root": False,
            },
        ],
        "usage_title": "Boto3 Setup Information:",
        "usage": [
            "1. Boto3 {boto3_version} installed (virtualenv: {use_venv})",
            "   - Activate virtual environment: source {venv_dir}/bin/activate",
            "   - Deactivate: deactivate",
            "2. Check Boto3 version: python3 -c 'import boto3; print(boto3.__version__)'",
            "3. Configure AWS credentials: aws configure (requires AWS CLI)",
            "4. Test with AWS: Edit and run a script with boto3.client('s3').list_buckets()",
            "5. Documentation: https://boto3.amazonaws.com/v1/documentation/api/latest/index.html",
        ],
    },
}
