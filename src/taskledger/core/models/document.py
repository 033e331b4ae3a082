"""KnowledgeDocument / DocumentVersion Domain Model -- 知识库文档与版本历史

每次被接受的变更都会生成一条不可变的版本记录（完整快照）。
恢复到旧版本是一次正常的前向更新，不改写历史。
"""

from typing import Any

from pydantic import BaseModel, Field

from .common import UtcDatetime
from .enums import ChangeType, DocumentCategory, DocumentStatus


class TemplateData(BaseModel):
    """模板配置（is_template=True 时使用）"""

    placeholders: list[str] | None = Field(default=None, description="需填充的占位符")
    default_values: dict[str, Any] | None = Field(default=None, description="默认字段值")
    required_fields: list[str] | None = Field(default=None, description="必填字段")
    instructions: str | None = Field(default=None, description="使用说明")


class KnowledgeDocument(BaseModel):
    """知识文档数据模型"""

    doc_id: str = Field(description="唯一标识")
    title: str = Field(description="标题，最长 200 字符")
    category: DocumentCategory = Field(description="分类")
    content: str = Field(description="正文（Markdown）")
    version: int = Field(default=1, description="版本号，从 1 开始")

    created_by: str = Field(description="创建者 ID")
    created_at: UtcDatetime = Field(description="创建时间")
    updated_at: UtcDatetime = Field(description="最后更新时间")
    last_updated_by: str = Field(description="最后修改者 ID")

    tags: list[str] = Field(default_factory=list, description="标签")
    related_items: list[str] = Field(default_factory=list, description="关联工作项 ID")
    related_documents: list[str] = Field(default_factory=list, description="关联文档 ID")

    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, description="状态")
    visibility: list[str] = Field(default_factory=lambda: ["all"], description="可见范围")

    is_template: bool = Field(default=False, description="是否为模板")
    template_data: TemplateData | None = Field(default=None, description="模板配置")

    view_count: int = Field(default=0, description="浏览次数")
    last_viewed_at: UtcDatetime | None = Field(default=None, description="最后浏览时间")
    search_keywords: list[str] = Field(default_factory=list, description="派生搜索关键词")


class DocumentSnapshot(BaseModel):
    """某一版本的完整字段快照"""

    title: str
    category: DocumentCategory
    content: str
    tags: list[str] = Field(default_factory=list)
    related_items: list[str] = Field(default_factory=list)
    related_documents: list[str] = Field(default_factory=list)
    status: DocumentStatus
    visibility: list[str] = Field(default_factory=list)
    is_template: bool = False
    template_data: TemplateData | None = None


class DocumentVersion(BaseModel):
    """文档版本条目 -- 写入后不可修改"""

    version_id: str = Field(description="版本唯一标识")
    doc_id: str = Field(description="所属文档 ID")
    version_number: int = Field(description="版本号，与文档写入时的 version 一致")
    change_type: ChangeType = Field(description="变更类型")
    snapshot: DocumentSnapshot = Field(description="该版本完整快照")
    created_at: UtcDatetime = Field(description="版本创建时间")
    created_by: str = Field(description="操作者 ID")
    change_reason: str | None = Field(default=None, description="变更原因")
    previous_version: int | None = Field(default=None, description="被取代的版本号")
    changes_summary: list[str] = Field(default_factory=list, description="可读变更说明")


class CreateDocumentRequest(BaseModel):
    """知识文档创建请求 -- 必填字段由校验器给出字段级错误"""

    title: str | None = None
    category: DocumentCategory | None = None
    content: str | None = None
    tags: list[str] | None = None
    related_items: list[str] | None = None
    related_documents: list[str] | None = None
    status: DocumentStatus | None = None
    visibility: list[str] | None = None
    is_template: bool | None = None
    template_data: TemplateData | None = None


class UpdateDocumentRequest(BaseModel):
    """知识文档更新补丁 -- 只有显式给出的字段参与合并"""

    title: str | None = None
    category: DocumentCategory | None = None
    content: str | None = None
    tags: list[str] | None = None
    related_items: list[str] | None = None
    related_documents: list[str] | None = None
    status: DocumentStatus | None = None
    visibility: list[str] | None = None
    is_template: bool | None = None
    template_data: TemplateData | None = None

    def changes(self) -> dict[str, Any]:
        """显式给出的字段"""
        return {name: getattr(self, name) for name in self.model_fields_set}


class DocumentFilters(BaseModel):
    """文档列表过滤条件"""

    category: DocumentCategory | None = None
    status: DocumentStatus | None = None
    tags: list[str] | None = None
    is_template: bool | None = None
    created_by: str | None = None


class FieldDifference(BaseModel):
    """版本对比中的单字段差异"""

    field: str
    old_value: Any = None
    new_value: Any = None


class VersionDiff(BaseModel):
    """两个版本之间的差异"""

    from_version: int
    to_version: int
    changes: list[FieldDifference] = Field(default_factory=list)
    timestamp: UtcDatetime
    changed_by: str


class TemplateInstanceRequest(BaseModel):
    """从模板创建文档的请求"""

    title: str | None = None
    content: str | None = None
    placeholder_values: dict[str, str] | None = None
    tags: list[str] | None = None
    related_items: list[str] | None = None


class TemplateCheck(BaseModel):
    """模板结构检查结果"""

    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
