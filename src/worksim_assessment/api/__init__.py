"""
HTTP surface of the assessment service.
"""

from worksim_assessment.api.dependencies import Services, get_current_user_id, require_admin
from worksim_assessment.api.routes import router

__all__ = ["Services", "get_current_user_id", "require_admin", "router"]
