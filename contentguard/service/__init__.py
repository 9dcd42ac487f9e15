from contentguard.service.messages import MessageType
from contentguard.service.service import ContentGuardService, build_service

__all__ = ["ContentGuardService", "MessageType", "build_service"]
