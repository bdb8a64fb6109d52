# Import every model so Base.metadata and the relationship registry see all tables
from money_matters.db.session import Base
from money_matters.models.user import User
from money_matters.models.group import Group
from money_matters.models.group_member import GroupMember
from money_matters.models.expense import Expense
from money_matters.models.expense_split import ExpenseSplit
from money_matters.models.refresh_token import RefreshToken

__all__ = ["Base", "User", "Group", "GroupMember", "Expense", "ExpenseSplit", "RefreshToken"]
