# control_panel/host/commands.py
"""Allow-listed host commands, built through the named factories below."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class AllowedCommand:
    """An argv vector the panel is permitted to execute (never through a shell)."""
    name: str
    argv: Tuple[str, ...]
    timeout: int = 300

    def __str__(self) -> str:
        return " ".join(self.argv)

    # -------------------------
    # systemd
    # -------------------------

    @classmethod
    def service_control(cls, service: str, action: str) -> "AllowedCommand":
        return cls("service_control", ("systemctl", action, service), timeout=60)

    @classmethod
    def service_status(cls, service: str) -> "AllowedCommand":
        return cls("service_status", ("systemctl", "is-active", service), timeout=10)

    @classmethod
    def journal(cls, lines: int) -> "AllowedCommand":
        return cls("journal", ("journalctl", "-n", str(lines), "--no-pager"), timeout=30)

    @classmethod
    def tail(cls, path: str, lines: int) -> "AllowedCommand":
        return cls("tail", ("tail", "-n", str(lines), path), timeout=30)

    @classmethod
    def service_restart_detached(cls, service: str) -> "AllowedCommand":
        # --no-block: the unit may be the one running this process
        return cls("service_restart_detached", ("systemctl", "--no-block", "restart", service), timeout=30)

    @classmethod
    def reboot(cls) -> "AllowedCommand":
        return cls("reboot", ("systemctl", "reboot"), timeout=30)

    # -------------------------
    # ufw
    # -------------------------

    @classmethod
    def ufw_status(cls) -> "AllowedCommand":
        return cls("ufw_status", ("ufw", "status", "numbered"), timeout=30)

    @classmethod
    def ufw_rule(cls, action: str, port: int, protocol: str) -> "AllowedCommand":
        return cls("ufw_rule", ("ufw", action, f"{port}/{protocol}"), timeout=30)

    @classmethod
    def ufw_delete(cls, number: int) -> "AllowedCommand":
        return cls("ufw_delete", ("ufw", "--force", "delete", str(number)), timeout=30)

    # -------------------------
    # certbot / nginx
    # -------------------------

    @classmethod
    def certbot_issue(cls, domain: str, webroot: str, email: str) -> "AllowedCommand":
        return cls("certbot_issue", (
            "certbot", "certonly", "--webroot", "-w", webroot,
            "-d", domain, "-d", f"www.{domain}",
            "--non-interactive", "--agree-tos", "-m", email,
        ))

    @classmethod
    def certbot_renew(cls, domain: str) -> "AllowedCommand":
        return cls("certbot_renew", ("certbot", "renew", "--cert-name", domain, "--non-interactive"))

    @classmethod
    def certbot_renew_all(cls) -> "AllowedCommand":
        return cls("certbot_renew_all", ("certbot", "renew", "--non-interactive"), timeout=600)

    @classmethod
    def nginx_test(cls) -> "AllowedCommand":
        return cls("nginx_test", ("nginx", "-t"), timeout=30)

    # -------------------------
    # packages / maintenance
    # -------------------------

    @classmethod
    def apt_update(cls) -> "AllowedCommand":
        return cls("apt_update", ("apt-get", "update"), timeout=600)

    @classmethod
    def apt_upgrade(cls) -> "AllowedCommand":
        return cls("apt_upgrade", ("apt-get", "upgrade", "-y"), timeout=1800)

    @classmethod
    def du(cls, path: str) -> "AllowedCommand":
        return cls("du", ("du", "-sb", path), timeout=60)

    @classmethod
    def tar_create(cls, archive: str, sources: Tuple[str, ...]) -> "AllowedCommand":
        return cls("tar_create", ("tar", "-czf", archive, *sources), timeout=1800)

    @classmethod
    def git_pull(cls, repo_dir: str) -> "AllowedCommand":
        return cls("git_pull", ("git", "-C", repo_dir, "pull", "--ff-only"), timeout=300)

    @classmethod
    def pip_install(cls, repo_dir: str) -> "AllowedCommand":
        return cls("pip_install", ("python3", "-m", "pip", "install", "-e", repo_dir), timeout=900)
