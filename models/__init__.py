# ✅ 모든 테이블을 Base.metadata 에 등록
from models import tests, test_assignments, test_results, certificates  # noqa: F401
