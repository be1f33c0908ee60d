"""
services/certificate_service.py

- 합격 결과 1건당 인증서 1건 발급
- 번호 체계: CERT-<발급 연도>-<연도 내 일련번호 4자리> (예: CERT-2026-0007)
  · 일련번호는 certificate_sequences 의 연도 행을 UPDATE ... last_value + 1 로 증가
    (발급 트랜잭션 안에서 행 잠금 → 동시 발급 시 직렬화)
  · certificates.certificate_number 유니크 인덱스로 저장소 수준에서 중복 차단
  · 연도 첫 발급은 INSERT IGNORE / ON CONFLICT DO NOTHING 으로 카운터 행을 먼저 만든 뒤 증가
  · 유니크 충돌 또는 MySQL 교착 상태(1213) 시 1회 재시도, 그래도 실패하면 409
- 유효 기간: 발급일 + 180일 (정책 상수)
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from dependencies.security import CurrentUser
from models.certificates import Certificate, CertificateSequence
from models.test_results import TestResult
from models.tests import Test
from schemas.certificates import CertificateOut
from utils.clock import utcnow
from utils.errors import Conflict, Forbidden, InvalidInput, NotFound

logger = logging.getLogger(__name__)

CERTIFICATE_VALIDITY = timedelta(days=180)
ISSUE_ATTEMPTS = 2
MYSQL_DEADLOCK = 1213


def format_certificate_number(year: int, sequence: int) -> str:
    return f"CERT-{year}-{sequence:04d}"


def effective_status(certificate: Certificate, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    if certificate.status == "expired" or certificate.expiry_date <= now:
        return "expired"
    return "active"


def _ensure_sequence_row(db: Session, year: int) -> None:
    """연도 카운터 행이 없을 때만 생성 (있으면 무시, 동시 생성도 충돌 없이 1행)"""
    values = {"year": year, "last_value": 0}
    if db.get_bind().dialect.name == "mysql":
        stmt = mysql_insert(CertificateSequence).values(**values).prefix_with("IGNORE")
    else:
        stmt = sqlite_insert(CertificateSequence).values(**values).on_conflict_do_nothing(
            index_elements=["year"]
        )
    db.execute(stmt)


def _next_sequence(db: Session, year: int) -> int:
    _ensure_sequence_row(db, year)
    db.query(CertificateSequence).filter(CertificateSequence.year == year).update(
        {CertificateSequence.last_value: CertificateSequence.last_value + 1},
        synchronize_session=False,
    )
    return (
        db.query(CertificateSequence.last_value)
        .filter(CertificateSequence.year == year)
        .scalar()
    )


def _is_deadlock(exc: OperationalError) -> bool:
    args = getattr(exc.orig, "args", ())
    return bool(args) and args[0] == MYSQL_DEADLOCK


def _issue_once(db: Session, user: CurrentUser, test_id: int, result_id: int, now: datetime) -> Certificate:
    result = db.get(TestResult, result_id)
    if not result or result.user_id != user.user_id or result.test_id != test_id:
        raise NotFound("응시 결과를 찾을 수 없습니다")
    if not result.passed:
        raise InvalidInput("합격하지 않은 시험 결과로는 인증서를 발급할 수 없습니다")

    existing = db.query(Certificate.id).filter(Certificate.test_result_id == result_id).first()
    if existing:
        raise Conflict("이미 인증서가 발급된 시험 결과입니다")

    sequence = _next_sequence(db, now.year)
    certificate = Certificate(
        user_id=user.user_id,
        test_id=test_id,
        test_result_id=result_id,
        certificate_number=format_certificate_number(now.year, sequence),
        score=result.score,
        issue_date=now,
        expiry_date=now + CERTIFICATE_VALIDITY,
        status="active",
    )
    db.add(certificate)
    db.commit()
    db.refresh(certificate)
    return certificate


# ✅ [ISSUE] 인증서 발급
def issue(db: Session, user: CurrentUser, test_id: int, result_id: int,
          now: Optional[datetime] = None) -> Certificate:
    now = now or utcnow()
    for attempt in range(1, ISSUE_ATTEMPTS + 1):
        try:
            certificate = _issue_once(db, user, test_id, result_id, now)
        except IntegrityError:
            db.rollback()
            logger.warning(f"인증서 번호 충돌, 재시도: result_id={result_id}, attempt={attempt}")
            continue
        except OperationalError as e:
            db.rollback()
            if not _is_deadlock(e):
                raise
            logger.warning(f"인증서 발급 교착 상태, 재시도: result_id={result_id}, attempt={attempt}")
            continue
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"인증서 발급: certificate_id={certificate.id}, number={certificate.certificate_number}, "
            f"user_id={user.user_id}, result_id={result_id}"
        )
        return certificate

    raise Conflict("인증서 번호 생성 중 충돌이 발생했습니다. 잠시 후 다시 시도해주세요")


def _get(db: Session, certificate_id: int) -> Certificate:
    certificate = db.get(Certificate, certificate_id)
    if not certificate:
        raise NotFound("인증서를 찾을 수 없습니다")
    return certificate


# ✅ [REVOKE] 인증서 폐기 (관리자 또는 소유자)
def revoke(db: Session, certificate_id: int, requester: CurrentUser) -> None:
    certificate = _get(db, certificate_id)
    if not requester.is_admin and certificate.user_id != requester.user_id:
        raise Forbidden("인증서를 삭제할 권한이 없습니다")

    number = certificate.certificate_number
    db.delete(certificate)
    db.commit()
    logger.info(f"인증서 폐기: certificate_id={certificate_id}, number={number}, by={requester.user_id}")


# ✅ [DOWNLOAD] 인증서 상세 (소유자만)
def get_for_download(db: Session, certificate_id: int, requester: CurrentUser) -> Tuple[Certificate, Optional[str]]:
    certificate = _get(db, certificate_id)
    if certificate.user_id != requester.user_id:
        raise Forbidden("인증서에 접근할 권한이 없습니다")
    test = db.get(Test, certificate.test_id)
    return certificate, (test.title if test else None)


# ✅ [LIST] 사용자 인증서 목록 (최근 발급순)
def list_for_user(db: Session, user_id: str) -> List[Tuple[Certificate, Optional[str]]]:
    rows = (
        db.query(Certificate, Test.title)
        .outerjoin(Test, Test.id == Certificate.test_id)
        .filter(Certificate.user_id == user_id)
        .order_by(Certificate.issue_date.desc(), Certificate.id.desc())
        .all()
    )
    return [(certificate, title) for certificate, title in rows]


def to_out(certificate: Certificate, test_title: Optional[str] = None) -> CertificateOut:
    return CertificateOut(
        id=certificate.id,
        user_id=certificate.user_id,
        test_id=certificate.test_id,
        test_result_id=certificate.test_result_id,
        certificate_number=certificate.certificate_number,
        score=certificate.score,
        issue_date=certificate.issue_date,
        expiry_date=certificate.expiry_date,
        status=effective_status(certificate),
        test_title=test_title,
    )
