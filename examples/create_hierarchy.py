#!/usr/bin/env python
"""Create an Epic > Feature > Story > Task hierarchy in one call"""
import asyncio
import os
from dotenv import load_dotenv
from ado_mcp.auth import AzureDevOpsAuth
from ado_mcp.formatters import format_bulk_create_result
from ado_mcp.services.workitem_service import WorkItemService
from ado_mcp.validation import parse_work_item_specs

ITEMS = [
    {
        "type": "Epic",
        "title": "Customer onboarding",
        "fields": {"System.Description": "Self-service onboarding flow"},
        "children": [
            {
                "type": "Feature",
                "title": "Sign-up wizard",
                "children": [
                    {
                        "type": "User Story",
                        "title": "As a visitor I can create an account",
                        "fields": {"Microsoft.VSTS.Scheduling.StoryPoints": 5},
                        "children": [
                            {"type": "Task", "title": "Build sign-up form"},
                            {"type": "Task", "title": "Send confirmation email"}
                        ]
                    }
                ]
            }
        ]
    }
]


async def main():
    load_dotenv()
    org_url = os.getenv('AZURE_DEVOPS_ORG_URL')
    project = os.getenv('AZURE_DEVOPS_PROJECT')

    print(f"Organization: {org_url}")
    print(f"Project: {project}\n")

    auth = AzureDevOpsAuth(org_url)
    await auth.initialize()

    workitem_service = WorkItemService(auth, project)
    results = await workitem_service.bulk_create_work_items(parse_work_item_specs(ITEMS), batch_size=3)
    response = format_bulk_create_result(results)

    summary = response['summary']
    print(f"Created: {summary['created']}  Linked: {summary['linked']}  Failed: {summary['failed']}\n")
    for result in response['results']:
        status = f"ERROR {result['error']}" if result['error'] else result['url']
        print(f"  {result['type']:<12} #{result['id']}  {result['title']}  {status}")

    await auth.close()

if __name__ == '__main__':
    asyncio.run(main())
