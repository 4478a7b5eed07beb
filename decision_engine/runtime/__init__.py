from .services import Services, build_services
from .supervisor import LoopSupervisor, RuntimeHealth

__all__ = ["LoopSupervisor", "RuntimeHealth", "Services", "build_services"]
