"""
Declarative base shared by all TexPlan models
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
