#control_panel\config.py

"""Panel configuration from environment variables (PANEL_* prefix)."""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_JWT_SECRET = "change-me"


class PanelSettings(BaseSettings):
    """Runtime settings for the control panel."""

    model_config = SettingsConfigDict(
        env_prefix="PANEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3000

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    cookie_name: str = "panel_token"

    # Bootstrap admin (created on first start when no user exists)
    bootstrap_admin_email: str = "admin@localhost"
    bootstrap_admin_password: str = "changeme123"
    bootstrap_admin_name: str = "Administrator"

    # Container runtime
    docker_base_url: Optional[str] = None
    default_memory_mb: int = 512
    default_cpu: float = 1.0

    # Domains / SSL
    server_ip: str = "127.0.0.1"
    verification_prefix: str = "_panel-verify"
    letsencrypt_email: str = "admin@localhost"
    webroot: str = "/var/www/html"
    letsencrypt_live_dir: str = "/etc/letsencrypt/live"
    ssl_valid_days: int = 90

    # Mail
    postfix_vhosts_file: str = "/etc/postfix/vhosts"
    postfix_vmailbox_file: str = "/etc/postfix/vmailbox"
    dovecot_users_file: str = "/etc/dovecot/users"
    mail_root: str = "/var/mail/vhosts"
    default_mail_quota: int = 1073741824

    # Host operations
    managed_services: List[str] = Field(
        default_factory=lambda: ["nginx", "postfix", "dovecot", "docker"]
    )
    monitored_services: List[str] = Field(
        default_factory=lambda: ["nginx", "postfix", "dovecot", "docker", "postgresql", "control-panel"]
    )
    log_files: Dict[str, str] = Field(
        default_factory=lambda: {
            "system": "/var/log/syslog",
            "nginx": "/var/log/nginx/error.log",
            "mail": "/var/log/mail.log",
            "panel": "/var/log/control-panel/panel.log",
        }
    )
    backup_dir: str = "/var/backups/panel"
    backup_sources: List[str] = Field(
        default_factory=lambda: ["/etc/nginx", "/etc/postfix", "/etc/dovecot", "/etc/letsencrypt"]
    )

    # Self update
    panel_version: str = "1.0.0"
    panel_service_name: str = "control-panel"
    install_dir: str = "/opt/control-panel"
    release_repo: str = "control-panel/control-panel"
    release_check_timeout: int = 10

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


settings = PanelSettings()
