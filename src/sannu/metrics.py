from prometheus_client import Counter

tenant_applications_submitted_total = Counter(
    "sannu_tenant_applications_submitted_total",
    "Number of tenant applications submitted"
)

tenant_applications_reviewed_total = Counter(
    "sannu_tenant_applications_reviewed_total",
    "Number of tenant applications reviewed",
    ["decision"]
)

project_status_transitions_total = Counter(
    "sannu_project_status_transitions_total",
    "Number of project status transitions",
    ["to_status"]
)

login_attempts_total = Counter(
    "sannu_login_attempts_total",
    "Number of login attempts",
    ["result"]
)

emails_sent_total = Counter(
    "sannu_emails_sent_total",
    "Number of outbound emails",
    ["status"]
)

images_removed_total = Counter(
    "sannu_images_removed_total",
    "Number of unused product images removed by cleanup"
)
