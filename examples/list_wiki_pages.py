#!/usr/bin/env python
"""List every page of a wiki"""
import asyncio
import os
import sys
from dotenv import load_dotenv
from ado_mcp.auth import AzureDevOpsAuth
from ado_mcp.services.wiki_service import WikiService


async def main(wiki_id: str):
    load_dotenv()
    org_url = os.getenv('AZURE_DEVOPS_ORG_URL')
    project = os.getenv('AZURE_DEVOPS_PROJECT')

    auth = AzureDevOpsAuth(org_url)
    await auth.initialize()

    pages = await WikiService(auth, project).list_pages(wiki_id)

    print(f"{len(pages)} pages in wiki {wiki_id}:")
    for page in pages:
        print(f"  {page['path']}")

    await auth.close()

if __name__ == '__main__':
    if len(sys.argv) != 2:
        print("usage: list_wiki_pages.py <wiki-name-or-id>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
