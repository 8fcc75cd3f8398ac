from sqlalchemy import Column, DateTime, Float, Index, String, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class Score(Base):
    """
    Best score per player address.

    Rows are only ever created by an INSERT for an absent address and
    only ever changed by a conditional UPDATE that matches the previous score.
    """
    __tablename__ = "scores"

    address = Column(String(255), primary_key=True, nullable=False)
    score = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Score(address={self.address}, score={self.score}, updated_at={self.updated_at})>"

# Backs the top-N scan: score descending, ties by address ascending
Index("ix_scores_score_desc_address", Score.score.desc(), Score.address)
