from sqlalchemy import Column, Integer, ForeignKey
from sqlalchemy.orm import relationship
from splitledger.db.session import Base

class ExpensePayment(Base):
    __tablename__ = "expense_payments"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(Integer, nullable=False)

    expense = relationship("Expense", back_populates="payments")
