"""
scripts/expire_assignments.py

- 마감이 지난 pending 배정을 expired 로 전환
- 외부 스케줄러(cron 등)에서 주기적으로 실행
  예: */10 * * * * cd /srv/app && python -m scripts.expire_assignments
"""

import logging

from database.db import SessionLocal
from services.assignment_service import expire_overdue

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run() -> int:
    db = SessionLocal()
    try:
        return expire_overdue(db)
    finally:
        db.close()


if __name__ == "__main__":
    count = run()
    print(f"✅ 마감 경과 배정 만료 처리 완료: {count}건")
