import pytest

from sannu.models.enums import ProjectStatus, ProjectVisibility, Role, TenantApplicationStatus


@pytest.mark.parametrize(
    "source,target,allowed",
    [
        (ProjectStatus.DRAFT, ProjectStatus.ACTIVE, True),
        (ProjectStatus.DRAFT, ProjectStatus.PAUSED, False),
        (ProjectStatus.ACTIVE, ProjectStatus.PAUSED, True),
        (ProjectStatus.PAUSED, ProjectStatus.ACTIVE, True),
        (ProjectStatus.COMPLETED, ProjectStatus.ACTIVE, False),
        (ProjectStatus.CANCELLED, ProjectStatus.DRAFT, False),
    ],
)
def test_project_status_transitions(source, target, allowed):
    assert source.can_transition_to(target) is allowed


def test_invalid_transition_description_names_both_states():
    assert ProjectStatus.DRAFT.transition_description(ProjectStatus.PAUSED) == "Invalid transition from Draft to Paused"


def test_resume_and_activate_descriptions_differ():
    assert ProjectStatus.PAUSED.transition_description(ProjectStatus.ACTIVE).startswith("Resuming")
    assert ProjectStatus.DRAFT.transition_description(ProjectStatus.ACTIVE).startswith("Activating")


def test_final_states_have_no_transitions():
    assert ProjectStatus.COMPLETED.valid_transitions() == []
    assert ProjectStatus.CANCELLED.is_final()
    assert not ProjectStatus.PAUSED.is_final()


def test_only_active_projects_accept_contributions():
    assert [s for s in ProjectStatus if s.accepts_contributions()] == [ProjectStatus.ACTIVE]


def test_visibility_helpers():
    assert ProjectVisibility.PUBLIC.is_publicly_discoverable()
    assert ProjectVisibility.PRIVATE.is_restricted()
    assert ProjectVisibility.INVITE_ONLY.is_restricted()
    assert not ProjectVisibility.PUBLIC.is_restricted()


def test_role_scopes():
    assert Role.SYSTEM_ADMIN.is_global_role()
    assert Role.TENANT_ADMIN.is_tenant_role()
    assert not Role.CONTRIBUTOR.is_tenant_role()


def test_application_status_labels():
    assert TenantApplicationStatus.PENDING.label() == "Pending Review"
