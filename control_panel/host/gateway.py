# control_panel/host/gateway.py
"""Host operations gateway - services, firewall, certificates, logs, backups."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from control_panel.config import PanelSettings
from control_panel.core.errors import UpstreamError, ValidationError
from control_panel.host.commands import AllowedCommand
from control_panel.host.runner import CommandResult, HostCommandRunner

logger = logging.getLogger(__name__)


SERVICE_ACTIONS = {"start", "stop", "restart", "reload"}
FIREWALL_PROTOCOLS = {"tcp", "udp"}
FIREWALL_ACTIONS = {"allow", "deny"}
MAX_LOG_LINES = 5000


class HostOperationsGateway:
    """
    Stateless wrapper around allow-listed host commands.

    Every input is validated before a command is built. Nothing is queued
    or retried: a non-zero exit becomes UpstreamError carrying the
    captured output.
    """

    def __init__(self, runner: HostCommandRunner, settings: PanelSettings):
        self._runner = runner
        self._settings = settings

    # ============================================
    # EXECUTION
    # ============================================

    def _execute(self, command: AllowedCommand) -> CommandResult:
        result = self._runner.run(command)
        if not result.ok:
            raise UpstreamError(
                f"Command '{command.name}' failed with exit code {result.exit_code}",
                details=(result.stderr or result.stdout).strip(),
            )
        return result

    # ============================================
    # SERVICES
    # ============================================

    def control_service(self, service: str, action: str) -> Dict[str, Any]:
        """Run systemctl <action> <service> for an allow-listed pair."""
        if service not in self._settings.managed_services:
            raise ValidationError(
                f"Service '{service}' is not allowed "
                f"(allowed: {', '.join(self._settings.managed_services)})"
            )
        if action not in SERVICE_ACTIONS:
            raise ValidationError(f"Invalid action '{action}' (allowed: {', '.join(sorted(SERVICE_ACTIONS))})")

        result = self._execute(AllowedCommand.service_control(service, action))
        logger.info(f"[gateway] {service} {action}")
        return {"message": f"{service} {action} succeeded", "output": result.stdout}

    def services_status(self) -> Dict[str, str]:
        """systemctl is-active for each monitored service; non-zero exit just means not active."""
        statuses = {}
        for service in self._settings.monitored_services:
            result = self._runner.run(AllowedCommand.service_status(service))
            statuses[service] = result.stdout.strip() or ("active" if result.ok else "inactive")
        return statuses

    # ============================================
    # FIREWALL
    # ============================================

    def firewall_status(self) -> Dict[str, Any]:
        output = self._execute(AllowedCommand.ufw_status()).stdout
        lines = output.splitlines()
        return {
            "active": any(line.strip().lower() == "status: active" for line in lines),
            "rules": [line.strip() for line in lines if line.strip().startswith("[")],
            "raw": output,
        }

    def add_firewall_rule(
        self,
        port: Union[int, str],
        protocol: str = "tcp",
        action: str = "allow",
    ) -> Dict[str, Any]:
        """
        Add a ufw rule.

        Args:
            port: numeric port, 1-65535
            protocol: "tcp" or "udp"
            action: "allow" or "deny"
        """
        port_text = str(port).strip()
        if not port_text.isdigit() or not 1 <= int(port_text) <= 65535:
            raise ValidationError(f"Invalid port '{port}'")
        protocol = (protocol or "tcp").lower()
        if protocol not in FIREWALL_PROTOCOLS:
            raise ValidationError(f"Invalid protocol '{protocol}'")
        action = (action or "allow").lower()
        if action not in FIREWALL_ACTIONS:
            raise ValidationError(f"Invalid firewall action '{action}'")

        result = self._execute(AllowedCommand.ufw_rule(action, int(port_text), protocol))
        logger.info(f"[gateway] firewall {action} {port_text}/{protocol}")
        return {"message": f"Rule added: {action} {port_text}/{protocol}", "output": result.stdout}

    def delete_firewall_rule(self, number: int) -> Dict[str, Any]:
        if number < 1:
            raise ValidationError("Rule number must be positive")
        result = self._execute(AllowedCommand.ufw_delete(number))
        return {"message": f"Rule {number} deleted", "output": result.stdout}

    # ============================================
    # CERTIFICATES / NGINX
    # ============================================

    def issue_certificate(self, domain_name: str) -> CommandResult:
        return self._execute(AllowedCommand.certbot_issue(
            domain_name, self._settings.webroot, self._settings.letsencrypt_email
        ))

    def renew_certificate(self, domain_name: str) -> CommandResult:
        return self._execute(AllowedCommand.certbot_renew(domain_name))

    def renew_all_certificates(self) -> Dict[str, Any]:
        result = self._execute(AllowedCommand.certbot_renew_all())
        return {"message": "Certificates renewed", "output": result.stdout}

    def reload_nginx(self) -> Dict[str, Any]:
        """Validate configuration first; reload only if nginx -t passes."""
        self._execute(AllowedCommand.nginx_test())
        result = self._execute(AllowedCommand.service_control("nginx", "reload"))
        return {"message": "nginx reloaded", "output": result.stdout}

    # ============================================
    # MAINTENANCE
    # ============================================

    def apt_update(self) -> Dict[str, Any]:
        return {"message": "Package lists updated", "output": self._execute(AllowedCommand.apt_update()).stdout}

    def apt_upgrade(self) -> Dict[str, Any]:
        return {"message": "Packages upgraded", "output": self._execute(AllowedCommand.apt_upgrade()).stdout}

    def reboot(self) -> Dict[str, Any]:
        logger.warning("[gateway] reboot requested")
        self._execute(AllowedCommand.reboot())
        return {"message": "Reboot scheduled"}

    def restart_panel(self) -> Dict[str, Any]:
        service = self._settings.panel_service_name
        logger.warning(f"[gateway] panel restart requested ({service})")
        self._execute(AllowedCommand.service_restart_detached(service))
        return {"message": f"{service} restart scheduled"}

    def run_update_step(self, command: AllowedCommand) -> CommandResult:
        return self._execute(command)

    # ============================================
    # LOGS
    # ============================================

    def log_types(self) -> List[str]:
        return ["journal", *self._settings.log_files.keys()]

    def read_logs(self, log_type: str = "journal", lines: int = 100) -> Dict[str, Any]:
        if not 1 <= lines <= MAX_LOG_LINES:
            raise ValidationError(f"lines must be between 1 and {MAX_LOG_LINES}")

        if log_type == "journal":
            command = AllowedCommand.journal(lines)
        elif log_type in self._settings.log_files:
            command = AllowedCommand.tail(self._settings.log_files[log_type], lines)
        else:
            raise ValidationError(f"Unknown log type '{log_type}' (available: {', '.join(self.log_types())})")

        output = self._execute(command).stdout
        return {"type": log_type, "lines": output.splitlines()}

    # ============================================
    # BACKUPS
    # ============================================

    def create_backup(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """tar.gz the configured sources into backup_dir."""
        now = now or datetime.now(timezone.utc)
        backup_dir = Path(self._settings.backup_dir)
        backup_dir.mkdir(parents=True, exist_ok=True)

        filename = f"panel-backup-{now.strftime('%Y-%m-%d-%H%M%S')}.tar.gz"
        archive = backup_dir / filename
        self._execute(AllowedCommand.tar_create(str(archive), tuple(self._settings.backup_sources)))

        logger.info(f"[gateway] backup written to {archive}")
        return {"message": "Backup created", "filename": filename, "path": str(archive)}

    def list_backups(self) -> List[Dict[str, Any]]:
        backup_dir = Path(self._settings.backup_dir)
        if not backup_dir.is_dir():
            return []

        backups = []
        for path in sorted(backup_dir.glob("*.tar.gz"), reverse=True):
            stat = path.stat()
            backups.append({
                "filename": path.name,
                "size": stat.st_size,
                "created_at": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            })
        return backups

    # ============================================
    # MAIL STORAGE
    # ============================================

    def mailbox_usage(self, path: str) -> int:
        """Bytes used under path; 0 when the maildir does not exist yet."""
        result = self._runner.run(AllowedCommand.du(path))
        if not result.ok or not result.stdout.strip():
            return 0
        return int(result.stdout.split()[0])
