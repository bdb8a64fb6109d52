from sqlalchemy import Column, Integer, Numeric, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from money_matters.db.session import Base

class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    share = Column(Numeric(10, 2), nullable=False)
    # True only for the payer's own share; not a settlement flag
    paid = Column(Boolean, nullable=False, default=False)

    expense = relationship("Expense", back_populates="splits")
    user = relationship("User")
