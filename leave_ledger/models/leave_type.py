from sqlalchemy import Column, Integer, String
from leave_ledger.database import Base


class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, index=True, nullable=False)  # "SL", "VL", "ML", ...
    name = Column(String, nullable=False)
    # SL or VL when requests of this type draw from the ledger, otherwise NULL
    credit_type = Column(String(2), nullable=True)

    @property
    def is_credit_backed(self) -> bool:
        return self.credit_type is not None

    def __repr__(self):
        return f"<LeaveType {self.code}: {self.name}>"
