from typing import Dict, Optional
from doodba.types.base import BaseModel
from doodba.types.models.key_selector import SecretKeySelector


class DoodbaConfig(BaseModel):
    """Odoo server configuration."""

    without_demo: bool
    list_database: bool
    proxy_mode: bool
    db_filter: Optional[str]
    admin_password: Optional[SecretKeySelector]

    def as_envs(self) -> Dict[str, str]:
        """Plain (non secret) settings as container environment variables."""
        envs = {
            "PROXY_MODE": str(self.proxy_mode).lower(),
            "WITHOUT_DEMO": "all" if self.without_demo else "false",
            "LIST_DB": str(self.list_database).lower(),
        }
        if self.db_filter:
            envs["DB_FILTER"] = self.db_filter
        return envs
