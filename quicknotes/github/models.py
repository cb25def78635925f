from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class Credential(BaseModel):
    """ベアラー認証情報"""

    token: str = Field(min_length=1)
    source: Literal["session", "manual"] = "manual"


class RepositoryRef(BaseModel):
    """対象リポジトリ (owner/name)"""

    owner: str
    name: str

    @field_validator("owner", "name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "RepositoryRef":
        """'owner/name' 形式の文字列から生成"""
        owner, sep, name = value.strip().partition("/")
        if not sep:
            raise ValueError("Repository must be given as owner/name")
        return cls(owner=owner, name=name)


class GitHubUser(BaseModel):
    """認証済みGitHubユーザー"""

    login: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.login


class Issue(BaseModel):
    """検索結果のIssueスナップショット"""

    model_config = {"frozen": True}

    number: int = Field(gt=0)
    title: str
    url: str
    state: Optional[Literal["open", "closed"]] = None
    updated_at: Optional[datetime] = None


class Label(BaseModel):
    """リポジトリのラベル"""

    name: str
    color: str = Field(pattern=r"^[0-9a-fA-F]{6}$")
    description: Optional[str] = None


class CreatedIssue(BaseModel):
    """作成されたIssue"""

    number: int
    url: str
    title: str


class CreatedComment(BaseModel):
    """作成されたコメント"""

    id: int
    url: str
    created_at: Optional[datetime] = None
