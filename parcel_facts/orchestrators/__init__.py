"""Pipeline orchestration."""

from parcel_facts.orchestrators.property_pipeline import PropertyReportPipeline, build_property_report

__all__ = ["PropertyReportPipeline", "build_property_report"]
