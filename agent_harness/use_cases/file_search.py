"""Hosted file search over uploaded documents."""

from agent_harness.models.agents import AgentSpec, FileSearchTool, ToolResources
from agent_harness.services.cleanup import document_store
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

VECTOR_STORE_NAME = "DemoDocumentStore"

PRODUCT_SPEC = """\
# Product Specification: SmartWidget Pro

## Overview
SmartWidget Pro is our flagship IoT device designed for industrial monitoring.
Release Date: March 2025. Price: $299/unit (volume discounts available).

## Technical Specifications
- Processor: ARM Cortex-M7, 480 MHz
- Memory: 512 KB RAM, 2 MB Flash
- Connectivity: Wi-Fi 6, Bluetooth 5.2, LoRaWAN
- Sensors: Temperature (-40°C to 125°C), Humidity, Pressure, Vibration
- Battery Life: Up to 5 years on CR2477 coin cell
- Enclosure: IP67 rated, industrial-grade aluminum

## Key Features
1. Real-time anomaly detection using edge ML models
2. OTA firmware updates via secure boot
3. Dashboard integration with Azure IoT Hub and AWS IoT Core
4. REST API for custom integrations
5. Multi-language SDK support (Python, C#, JavaScript)

## Compliance
- CE, FCC, and UL certified
- GDPR and SOC 2 Type II compliant
- ISO 27001 security certified
"""

HR_POLICY = """\
# Company HR Policy Document

## Remote Work Policy (Effective January 2025)
- All employees are eligible for hybrid work (3 days office, 2 days remote).
- Fully remote positions require VP approval.
- Home office stipend: $500/year for equipment.
- Core hours: 10 AM-3 PM local time for meetings.

## Leave Policy
- Annual PTO: 20 days for all employees, 25 days after 5 years.
- Sick leave: 10 days/year (no rollover).
- Parental leave: 16 weeks paid for primary caregiver, 8 weeks for secondary.
- Bereavement leave: 5 days for immediate family.

## Benefits
- Health insurance: Comprehensive plan (medical, dental, vision), 90% company paid.
- 401(k) match: 100% up to 6% of salary.
- Learning & Development budget: $2,000/year per employee.
- Gym membership reimbursement: up to $75/month.

## Performance Reviews
- Bi-annual reviews (June and December).
- Rating scale: 1 (Below Expectations) to 5 (Exceptional).
- Promotion eligibility requires rating of 4+ for two consecutive cycles.
"""

SALES_REPORT = """\
# Q4 2025 Sales Report

## Executive Summary
Total revenue for Q4 2025 was $12.4M, representing a 23% YoY increase.
The EMEA region showed the strongest growth at 31%, while APAC grew 18%.

## Revenue Breakdown by Region
| Region | Q4 2025 | Q4 2024 | Growth |
|--------|---------|---------|--------|
| North America | $5.2M | $4.5M | 15.6% |
| EMEA | $4.1M | $3.1M | 32.3% |
| APAC | $2.3M | $1.9M | 21.1% |
| LATAM | $0.8M | $0.6M | 33.3% |

## Top Products
1. SmartWidget Pro: $4.8M (39% of total)
2. DataSync Platform: $3.6M (29% of total)
3. CloudMonitor Suite: $2.1M (17% of total)
4. Professional Services: $1.9M (15% of total)

## Key Metrics
- New customers acquired: 142
- Customer retention rate: 94.2%
- Average deal size: $87,300 (up from $72,100)
- Sales cycle length: 45 days average (down from 58 days)

## Forecast
Q1 2026 pipeline: $15.8M with 68% weighted probability.
Expected close: $10.7M (projected 14% QoQ growth).
"""

DOCUMENTS = {
    "smartwidget_pro_spec.md": PRODUCT_SPEC,
    "hr_policy.md": HR_POLICY,
    "q4_2025_sales_report.md": SALES_REPORT,
}

INSTRUCTIONS = """\
You are DocSearchAgent, a precise document search assistant.
You have access to uploaded company documents via file search.

RULES:
1. Always use the file search tool to find relevant information.
2. Quote specific data points (numbers, dates, percentages) from the documents.
3. If the information is not found in any document, say so clearly.
4. Reference which document the information came from.
5. Present findings in a structured, easy-to-read format."""

PROMPTS = [
    "What are the technical specifications of the SmartWidget Pro? What sensors does it include?",
    "How much PTO do I get? And what's the parental leave policy?",
    "What was the total Q4 2025 revenue and which region grew the fastest?",
    # Needs both the product spec and the sales report
    "How much revenue did SmartWidget Pro generate, and what is its price per unit?",
]


def build_spec(vector_store_id: str) -> AgentSpec:
    return AgentSpec(
        name="DocSearchAgent",
        instructions=INSTRUCTIONS,
        tools=[FileSearchTool()],
        tool_resources=ToolResources(vector_store_ids=[vector_store_id]),
    )


async def run(ctx: UseCaseContext) -> None:
    documents = {name: text.encode("utf-8") for name, text in DOCUMENTS.items()}
    # The agent scope closes first, so the vector store and files outlive the agent
    async with document_store(ctx.service, VECTOR_STORE_NAME, documents) as (vector_store_id, file_ids):
        ctx.console.print(
            f"Uploaded {len(file_ids)} documents to vector store {vector_store_id}", style="dim", markup=False
        )
        await run_conversation(ctx, build_spec(vector_store_id), PROMPTS)


def create_file_search_use_case() -> UseCase:
    return UseCase(
        number=7,
        key="files",
        title="File Search",
        description="Documents are uploaded and indexed into a vector store that the agent searches.",
        run=run,
    )
