from .app_state import AppState, Notice, NoticeLevel
from .interaction import InteractionController
from .modal_state import ActiveModal, ModalKind

__all__ = ["ActiveModal", "AppState", "InteractionController", "ModalKind", "Notice", "NoticeLevel"]
