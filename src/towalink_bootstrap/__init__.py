"""
Towalink Bootstrap Agent
엣지 노드가 사람의 개입 없이 컨트롤러와의 관리 터널(WireGuard)을 구성하고 유지하는 에이전트

Features:
- 부팅 시 자동 실행되는 서비스로 자체 설치
- 키 기반 검증을 거친 복구 문서 다운로드 및 적용
- 키 자료의 1회 생성 및 2단계(임시 → 확정) 커밋
- 컨트롤러와의 부트스트랩 협상 및 터널 인터페이스 구성
- 재시작/전원 차단에 안전한 상태 저장
"""

__version__ = "0.1.0"
__author__ = "The Towalink Project"
