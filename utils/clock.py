from datetime import datetime, timezone


def utcnow() -> datetime:
    """DB 저장용 UTC 시각 (tz 정보 없음, MySQL DATETIME 과 동일한 형태)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
