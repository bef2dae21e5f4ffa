"""
Infrastructure as code: terraform, ansible.
"""

from __future__ import annotations

from setupctl.core.recipes.data.fragments import APT_UPDATE, apt_update_with, prerequisites

_TERRAFORM_TEST_CONFIG = """\
terraform {
  required_providers {
    null = {
      source = "hashicorp/null"
      version = "3.2.1"
    }
  }
}

resource "null_resource" "test" {
  provisioner "local-exec" {
    command = "echo 'Terraform test successful'"
  }
}
"""


INFRA_RECIPES: dict[str, dict] = {

    "terraform": {
        "label": "Terraform",
        "description": "Terraform from the HashiCorp apt repository, validated against a test config.",
        "category": "iac",
        "vars": [
            {"name": "test_dir", "default": "{home}/terraform-test"},
        ],
        "steps": [
            APT_UPDATE,
            prerequisites("gnupg", "software-properties-common", "curl"),
            {"kind": "include", "fragment": "hashicorp_repo"},
            {
                "kind": "apt_install",
                "name": "Installing Terraform...",
                "error": "Failed to install Terraform",
                "packages": ["terraform"],
            },
            {
                "kind": "verify",
                "name": "Verifying Terraform installation...",
                "error": "Terraform installation verification failed",
                "binary": "terraform",
                "version_argv": ["terraform", "version"],
                "fact": "terraform_version",
            },
            {
                "kind": "write_file",
                "name": "Setting up test directory...",
                "error": "Failed to create test directory",
                "path": "{test_dir}/main.tf",
                "owner": "{invoking_user}",
                "if_missing": True,
                "needs_root": False,
                "content": _TERRAFORM_TEST_CONFIG,
            },
            {
                "kind": "command",
                "name": "Initializing the Terraform test configuration...",
                "error": "Terraform initialization failed",
                "argv": ["terraform", "init"],
                "cwd": "{test_dir}",
                "needs_root": False,
            },
            {
                "kind": "command",
                "name": "Validating the Terraform test configuration...",
                "error": "Terraform validation failed",
                "argv": ["terraform", "validate"],
                "cwd": "{test_dir}",
                "needs_root": False,
            },
        ],
        "usage_title": "To get started with Terraform:",
        "usage": [
            "1. Test the installation: cd {test_dir} && terraform apply",
            "2. Check version: terraform version",
            "3. Common commands:",
            "   - Initialize: terraform init",
            "   - Plan: terraform plan",
            "   - Apply: terraform apply",
            "4. Documentation: https://www.terraform.io/docs",
        ],
    },

    "ansible": {
        "label": "Ansible",
        "description": "Ansible from the ansible/ansible PPA with a local inventory.",
        "category": "iac",
        "vars": [
            {"name": "config_dir", "default": "/etc/ansible"},
            {"name": "remote_user", "default": "ubuntu"},
        ],
        "steps": [
            APT_UPDATE,
            {
                "kind": "apt_install",
                "name": "Installing prerequisites...",
                "error": "Failed to install software-properties-common",
                "packages": ["software-properties-common"],
            },
            {
                "kind": "ppa",
                "name": "Adding Ansible PPA...",
                "error": "Failed to add Ansible PPA",
                "ppa": "ppa:ansible/ansible",
            },
            apt_update_with("Ansible PPA"),
            {
                "kind": "apt_install",
                "name": "Installing Ansible...",
                "error": "Failed to install Ansible",
                "packages": ["ansible"],
            },
            {
                "kind": "verify",
                "name": "Verifying Ansible installation...",
                "error": "Ansible installation verification failed",
                "binary": "ansible",
                "version_argv": ["ansible", "--version"],
                "first_line": True,
                "fact": "ansible_version",
            },
            {
                "kind": "write_file",
                "name": "Setting up Ansible configuration...",
                "error": "Failed to create Ansible config",
                "path": "{config_dir}/ansible.cfg",
                "if_missing": True,
                "content": (
                    "[defaults]\n"
                    "inventory = {config_dir}/hosts\n"
                    "remote_user = {remote_user}\n"
                    "host_key_checking = False\n"
                ),
            },
            {
                "kind": "write_file",
                "name": "Setting up default inventory file...",
                "error": "Failed to create hosts file",
                "path": "{config_dir}/hosts",
                "if_missing": True,
                "content": "[local]\nlocalhost ansible_connection=local\n",
            },
            {
                "kind": "command",
                "name": "Testing Ansible setup...",
                "error": "Ansible ping test failed",
                "argv": ["ansible", "all", "-m", "ping"],
                "expect": "SUCCESS",
            },
        ],
        "usage_title": "To get started with Ansible:",
        "usage": [
            "1. Edit inventory: {config_dir}/hosts",
            "2. Edit config: {config_dir}/ansible.cfg",
            "3. Run commands: ansible <group> -m <module>",
        ],
    },
}
