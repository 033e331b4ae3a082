"""CLI 入口模块 -- python -m taskledger.core <command>

支持的命令：
  reconcile  核对工作项、目标成员与审计日志的一致性
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m taskledger.core <command>")
        print("命令:")
        print("  reconcile  核对工作项、目标成员与审计日志的一致性")
        sys.exit(1)

    command = sys.argv[1]

    if command == "reconcile":
        consistent = asyncio.run(run_reconcile())
        sys.exit(0 if consistent else 2)
    else:
        print(f"未知命令: {command}")
        print("可用命令: reconcile")
        sys.exit(1)


async def run_reconcile() -> bool:
    """执行一致性核对并打印报告，返回是否一致"""
    from .reconcile import reconcile
    from .store import create_document_store

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    print("开始核对...")

    store = await create_document_store(db_path)

    try:
        report = await reconcile(store)
    finally:
        await store.close()

    print(
        f"扫描 {report.items_scanned} 个工作项, "
        f"{report.objectives_scanned} 个目标, "
        f"{report.audit_entries_scanned} 条审计"
    )
    for issue in report.issues:
        target = f" objective={issue.objective_id}" if issue.objective_id else ""
        print(f"  [{issue.kind}] item={issue.item_id}{target} -- {issue.detail}")
    if report.consistent:
        print("未发现不一致")
    else:
        print(f"发现 {len(report.issues)} 处不一致")
    return report.consistent


if __name__ == "__main__":
    main()
