"""Simulated company knowledge base search (RAG pattern)."""

from typing import Any

from pydantic import BaseModel, Field

from agent_harness.tools.base import ToolDefinition

KNOWLEDGE_BASE: dict[str, str] = {
    "refund policy": (
        "Our refund policy allows returns within 30 days of purchase. Items must be in original condition. "
        "Digital products can be refunded within 14 days if unused. "
        "Contact support@company.com for refund requests."
    ),
    "shipping": (
        "Standard shipping takes 5-7 business days. Express shipping is 2-3 business days. "
        "Free shipping on orders over $50. International shipping available to 40+ countries."
    ),
    "pricing plans": (
        "We offer three plans: Basic ($9.99/mo) with 5 users, Professional ($29.99/mo) with 25 users "
        "and priority support, and Enterprise (custom pricing) with unlimited users, SSO, "
        "and dedicated account manager."
    ),
    "api limits": (
        "Free tier: 1,000 requests/day. Pro tier: 50,000 requests/day. Enterprise: unlimited. "
        "Rate limiting applies at 100 requests/minute for all tiers."
    ),
    "security": (
        "We use AES-256 encryption at rest and TLS 1.3 in transit. SOC 2 Type II certified. GDPR compliant. "
        "Two-factor authentication available. Regular penetration testing performed quarterly."
    ),
    "contact": (
        "Support hours: Mon-Fri 9am-6pm EST. Email: support@company.com. Phone: 1-800-555-0199. "
        "Live chat available on our website during business hours."
    ),
}


class KnowledgeBaseInput(BaseModel):
    """Input schema for the knowledge base search tool."""

    query: str = Field(..., description="The search query to look up in the knowledge base")


def search_knowledge_base(params: KnowledgeBaseInput) -> dict[str, Any]:
    """Case-insensitive substring match over topics and article bodies."""
    needle = params.query.strip().lower()
    results = [
        {"topic": topic, "content": content}
        for topic, content in KNOWLEDGE_BASE.items()
        if needle and (needle in topic or needle in content.lower())
    ]

    if not results:
        return {"message": "No relevant information found.", "query": params.query}

    return {"results": results, "query": params.query}


def create_knowledge_base_tool() -> ToolDefinition:
    return ToolDefinition(
        name="search_knowledge_base",
        description=(
            "Search the company knowledge base for information about policies, products, pricing, "
            "and support topics. Always call this tool before answering customer questions."
        ),
        input_schema_class=KnowledgeBaseInput,
        handler=search_knowledge_base,
    )
