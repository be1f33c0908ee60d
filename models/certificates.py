from sqlalchemy import Column, Integer, String, DateTime, Index
from database.db import Base
from utils.clock import utcnow


class Certificate(Base):
    __tablename__ = "certificates"  # 인증서 테이블

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False)
    test_id = Column(Integer, nullable=False, index=True)
    test_result_id = Column(Integer, nullable=False, unique=True)           # 결과 1건당 인증서 1건
    certificate_number = Column(String(32), nullable=False, unique=True)    # CERT-<연도>-<일련번호>
    score = Column(Integer, nullable=False)                                 # 발급 시점 점수 (이후 변경 없음)
    issue_date = Column(DateTime, nullable=False, default=utcnow)
    expiry_date = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active")          # active / expired

    __table_args__ = (
        Index("ix_certificates_user_status", "user_id", "status"),
    )


class CertificateSequence(Base):
    __tablename__ = "certificate_sequences"  # 연도별 인증서 일련번호 카운터

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
