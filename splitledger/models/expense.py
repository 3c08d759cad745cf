from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from splitledger.db.session import Base

class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    description = Column(String, nullable=False)
    # minor units, e.g. cents
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    paid_by = Column(Integer, nullable=False)
    created_by = Column(Integer, nullable=False)
    category = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    date = Column(DateTime(timezone=True), server_default=func.now())

    payments = relationship("ExpensePayment", back_populates="expense", cascade="all, delete-orphan")
    splits = relationship("ExpenseSplit", back_populates="expense", cascade="all, delete-orphan")
