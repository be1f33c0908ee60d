import sys

from utils.security import create_access_token

# 개발용: 외부 인증 서버 없이 로컬에서 API 호출할 때 사용
# 사용법: python -m scripts.issue_dev_token <사용자ID> [역할] [부서코드]
if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("사용법: python -m scripts.issue_dev_token <user_id> [employee|manager|admin] [department]")
        sys.exit(1)

    user_id = sys.argv[1]
    role = sys.argv[2] if len(sys.argv) > 2 else "employee"
    department = sys.argv[3] if len(sys.argv) > 3 else None
    print(create_access_token(user_id, role=role, department=department))
