"""Docset catalog: seed pages and the resolved crawl scope.

Seed paths are relative to the docset root *after* the version segment, so the
same table serves every configured version.
"""

from dataclasses import dataclass, field
from typing import NamedTuple

from loguru import logger

from runai_docs.docsets import (
    UNVERSIONED,
    DocsetDescriptor,
    get_docset,
    version_sort_key,
)
from runai_docs.models import PageEntry, VersionRecord
from runai_docs.urls import build_url, dedup_key


class SeedPage(NamedTuple):
    path: str
    category: str
    subcategory: str
    title: str


# ---------------------------------------------------------------------------
# Seed tables
# ---------------------------------------------------------------------------

SELF_HOSTED_SEEDS: list[SeedPage] = [
    # Installation
    SeedPage("getting-started/installation/support-matrix", "installation", "requirements", "Support Matrix"),
    SeedPage("getting-started/installation/install-using-helm/cp-system-requirements", "installation", "requirements", "Control Plane System Requirements"),
    SeedPage("getting-started/installation/install-using-helm/system-requirements", "installation", "requirements", "Cluster System Requirements"),
    SeedPage("getting-started/installation/install-using-helm/network-requirements", "installation", "requirements", "Network Requirements"),
    SeedPage("getting-started/installation/install-using-helm/preparations", "installation", "helm", "Installation Preparations"),
    SeedPage("getting-started/installation/install-using-helm/install-control-plane", "installation", "helm", "Install Control Plane"),
    SeedPage("getting-started/installation/install-using-helm/helm-install", "installation", "helm", "Install Cluster"),
    SeedPage("getting-started/installation/install-using-helm/upgrade", "installation", "helm", "Upgrade"),
    SeedPage("getting-started/installation/install-using-helm/uninstall", "installation", "helm", "Uninstall"),
    # Infrastructure
    SeedPage("infrastructure-setup/authentication/overview", "infrastructure", "authentication", "Authentication Overview"),
    SeedPage("infrastructure-setup/authentication/roles", "infrastructure", "authentication", "Roles"),
    SeedPage("infrastructure-setup/authentication/accessrules", "infrastructure", "authentication", "Access Rules"),
    SeedPage("infrastructure-setup/advanced-setup/cluster-config", "infrastructure", "configuration", "Cluster Configuration"),
    SeedPage("infrastructure-setup/procedures/clusters", "infrastructure", "procedures", "Cluster Management"),
    SeedPage("infrastructure-setup/procedures/high-availability", "infrastructure", "procedures", "High Availability"),
    # Platform management
    SeedPage("platform-management/aiinitiatives/organization/projects", "platform", "organization", "Projects"),
    SeedPage("platform-management/aiinitiatives/organization/departments", "platform", "organization", "Departments"),
    SeedPage("platform-management/aiinitiatives/resources/node-pools", "platform", "resources", "Node Pools"),
    SeedPage("platform-management/monitor-performance/metrics", "platform", "monitoring", "Metrics"),
    SeedPage("settings/general-settings", "platform", "settings", "General Settings"),
    # Workloads
    SeedPage("workloads-in-nvidia-run-ai/introduction-to-workloads", "workloads", "concepts", "Introduction to Workloads"),
    SeedPage("workloads-in-nvidia-run-ai/workload-types", "workloads", "concepts", "Workload Types"),
    SeedPage("workloads-in-nvidia-run-ai/submit-via-yaml", "workloads", "submission", "Submit via YAML"),
    SeedPage("workloads-in-nvidia-run-ai/using-training/train-models", "workloads", "training", "Train Models"),
    SeedPage("workloads-in-nvidia-run-ai/using-inference/custom-inference", "workloads", "inference", "Custom Inference"),
    SeedPage("workloads-in-nvidia-run-ai/assets/overview", "workloads", "assets", "Assets Overview"),
    # Scheduler
    SeedPage("platform-management/runai-scheduler/scheduling/how-the-scheduler-works", "scheduler", "concepts", "How the Scheduler Works"),
    SeedPage("platform-management/runai-scheduler/scheduling/concepts-and-principles", "scheduler", "concepts", "Concepts and Principles"),
    SeedPage("platform-management/runai-scheduler/resource-optimization/fractions", "scheduler", "resource-optimization", "GPU Fractions"),
    SeedPage("platform-management/runai-scheduler/resource-optimization/dynamic-fractions", "scheduler", "resource-optimization", "Dynamic GPU Fractions"),
    # CLI
    SeedPage("reference/cli/install-cli", "cli", "overview", "Install CLI"),
    SeedPage("reference/cli/runai", "cli", "overview", "runai CLI Overview"),
    # Policies
    SeedPage("platform-management/policies/policies-and-rules", "policies", "overview", "Policies and Rules"),
    SeedPage("platform-management/policies/policy-yaml-reference", "policies", "reference", "Policy YAML Reference"),
]

API_SEEDS: list[SeedPage] = [
    SeedPage("getting-started/about-the-rest-api", "api", "getting-started", "About the REST API"),
    SeedPage("getting-started/how-to-authenticate-to-the-api", "api", "getting-started", "API Authentication"),
    SeedPage("getting-started/using-the-rest-api/pagination", "api", "getting-started", "Pagination"),
    SeedPage("organizations/clusters", "api", "organizations", "Clusters API"),
    SeedPage("organizations/projects", "api", "organizations", "Projects API"),
    SeedPage("authentication-and-authorization/access-rules", "api", "auth", "Access Rules API"),
    SeedPage("authentication-and-authorization/users", "api", "auth", "Users API"),
    SeedPage("workloads/workloads", "api", "workloads", "Workloads API"),
    SeedPage("workloads/trainings", "api", "workloads", "Trainings API"),
    SeedPage("workload-assets/compute", "api", "workload-assets", "Compute Assets API"),
    SeedPage("policies/policy", "api", "policies", "Policies API"),
    SeedPage("audit/auditlogs", "api", "audit", "Audit Logs API"),
]

SAAS_SEEDS: list[SeedPage] = [
    SeedPage("getting-started/overview", "getting-started", "overview", "Overview"),
    SeedPage("getting-started/whats-new-for-nvidia-run-ai-saas", "getting-started", "whats-new", "What's New for SaaS"),
    SeedPage("getting-started/installation", "getting-started", "installation", "Installation"),
    SeedPage("support-policy/product-support-policy", "support-policy", "overview", "Product Support Policy"),
    SeedPage("support-policy/product-version-life-cycle", "support-policy", "versions", "Product Version Life Cycle"),
]

MULTI_TENANT_SEEDS: list[SeedPage] = [
    SeedPage("getting-started/overview", "getting-started", "overview", "Overview"),
    SeedPage("getting-started/installation", "getting-started", "installation", "Installation"),
    SeedPage("getting-started/api-access-setup", "getting-started", "api-access", "API Access Setup"),
    SeedPage("support-policy/product-support-policy", "support-policy", "overview", "Product Support Policy"),
    SeedPage("support-policy/product-version-life-cycle", "support-policy", "versions", "Product Version Life Cycle"),
]

LEGACY_SEEDS: list[SeedPage] = [
    SeedPage("home/documentation-library", "home", "overview", "Documentation Library"),
    SeedPage("developer/admin-rest-api/overview", "developer", "api", "Run:ai REST API Overview"),
    SeedPage("developer/cluster-api/workload-overview-dev", "developer", "cluster-api", "Cluster API (Deprecated)"),
    SeedPage("Researcher/cli-reference/new-cli/overview", "researcher", "cli", "CLI v2 Overview"),
]

SEED_PAGES: dict[str, list[SeedPage]] = {
    "self-hosted": SELF_HOSTED_SEEDS,
    "api": API_SEEDS,
    "saas": SAAS_SEEDS,
    "multi-tenant": MULTI_TENANT_SEEDS,
    "legacy": LEGACY_SEEDS,
}


# ---------------------------------------------------------------------------
# Resolved catalog
# ---------------------------------------------------------------------------


@dataclass
class Catalog:
    """Docsets, allowed versions and seed entries for one crawl run."""

    docsets: list[DocsetDescriptor]
    versions: dict[str, list[str]]
    seeds: list[PageEntry] = field(default_factory=list)

    def get(self, docset_id: str) -> DocsetDescriptor | None:
        for docset in self.docsets:
            if docset.id == docset_id:
                return docset
        return None

    def allowed_versions(self, docset_id: str) -> list[str]:
        return self.versions.get(docset_id, [])

    def is_allowed(self, docset_id: str, version: str) -> bool:
        return version in self.allowed_versions(docset_id)

    def version_records(self) -> list[VersionRecord]:
        """One record per (docset, version); the highest version is latest."""
        records: list[VersionRecord] = []
        for docset in self.docsets:
            versions = self.allowed_versions(docset.id)
            if not versions:
                continue
            latest = max(versions, key=version_sort_key)
            for version in versions:
                records.append(
                    VersionRecord(
                        docset=docset.id,
                        version=version,
                        is_latest=version == latest,
                    )
                )
        return records


def build_catalog(
    docsets: list[str],
    versions: list[str],
    seed_pages: dict[str, list[SeedPage]] | None = None,
) -> Catalog:
    """Resolve selected docsets x versions into seed entries.

    Unknown docset ids are skipped with a warning. Unversioned docsets get the
    single version ``latest``. Seeds are de-duplicated by identity tuple.
    """
    tables = SEED_PAGES if seed_pages is None else seed_pages

    selected: list[DocsetDescriptor] = []
    docset_versions: dict[str, list[str]] = {}
    seeds: list[PageEntry] = []
    seen: set[str] = set()

    for docset_id in docsets:
        desc = get_docset(docset_id)
        if desc is None:
            logger.warning(f"Unknown docset '{docset_id}', skipping")
            continue
        if desc in selected:
            continue
        selected.append(desc)

        resolved = list(versions) if desc.versioned else [UNVERSIONED]
        docset_versions[desc.id] = resolved

        for version in resolved:
            for page in tables.get(desc.id, []):
                entry = PageEntry(
                    docset=desc.id,
                    version=version,
                    url=build_url(desc.id, version, page.path),
                    category=page.category,
                    subcategory=page.subcategory,
                    title=page.title,
                )
                key = dedup_key(entry)
                if key in seen:
                    continue
                seen.add(key)
                seeds.append(entry)

    logger.debug(
        f"Catalog: {len(selected)} docsets, {len(seeds)} seed pages "
        f"({', '.join(f'{k}={v}' for k, v in docset_versions.items())})"
    )
    return Catalog(docsets=selected, versions=docset_versions, seeds=seeds)


def build_catalog_from_settings(settings=None) -> Catalog:
    """Build the catalog selected by configuration."""
    if settings is None:
        from runai_docs.config import settings
    return build_catalog(settings.resolve_docsets(), settings.resolve_versions())
