from quiz_admin.models.user import User
from quiz_admin.models.game_session import GameSession
from quiz_admin.models.financial_item import FinancialItem

__all__ = ["User", "GameSession", "FinancialItem"]
