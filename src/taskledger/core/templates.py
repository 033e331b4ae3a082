"""文档模板 -- 占位符提取、渲染与结构检查

占位符写法为 {{name}}，name 由字母、数字、下划线组成。
"""

import re

from .models import DocumentStatus, KnowledgeDocument, TemplateCheck

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def extract_placeholders(content: str) -> list[str]:
    """按首次出现顺序返回正文中的占位符名（去重）"""
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(content)))


def render(content: str, placeholders: list[str] | None, values: dict[str, str] | None) -> str:
    """用给定值替换已声明的占位符

    未声明或未提供值（空字符串同样视为未提供）的占位符保持原样。
    """
    if not placeholders or not values:
        return content
    for name in placeholders:
        value = values.get(name)
        if value:
            content = content.replace("{{" + name + "}}", value)
    return content


def validate_template(document: KnowledgeDocument) -> TemplateCheck:
    """检查模板配置

    非模板文档是错误；缺少配置、占位符声明与正文不一致、未发布只产生告警。
    """
    check = TemplateCheck()
    if not document.is_template:
        check.errors.append("Document is not marked as a template")

    template_data = document.template_data
    if template_data is None:
        check.warnings.append("Template has no template_data configuration")
    else:
        used = extract_placeholders(document.content)
        if used and not template_data.placeholders:
            check.warnings.append(
                f"Content contains placeholders but none are declared: {', '.join(used)}"
            )
        for name in template_data.placeholders or []:
            if name not in used:
                check.warnings.append(f"Declared placeholder '{name}' not found in content")

    if document.status != DocumentStatus.PUBLISHED:
        check.warnings.append("Template is not published - it will not be available to users")

    check.is_valid = not check.errors
    return check
