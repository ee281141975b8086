"""
Core Application - Shared Base Classes

Generic building blocks used by the domain apps. No chat logic lives here.

    core.models      BaseModel (created_at / updated_at)
    core.services    BaseService, ServiceResult
    core.exceptions  BaseApplicationError, ValidationError, PermissionDeniedError
    core.views       health_check
"""
