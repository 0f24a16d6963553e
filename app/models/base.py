from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    모든 SQLAlchemy 모델이 상속할 기본 Base 클래스

    테이블 메타데이터 등록을 위해 모델 모듈은 app.main에서 한 번씩 import 됨
    """

    pass
