from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

# Surrogate keys are BIGINT on MySQL; SQLite only autoincrements INTEGER PRIMARY KEY
BIGINT = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass
