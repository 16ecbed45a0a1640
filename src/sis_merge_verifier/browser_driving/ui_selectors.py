"""Named selectors for the application's UI surfaces."""

from __future__ import annotations

from dataclasses import dataclass

from sis_merge_verifier.case_catalog import EntityKind

LOGIN_EMAIL_INPUT = 'input[placeholder="Email"]'
LOGIN_NEXT_BUTTON = 'button[data-test="next-button"]'
LOGIN_PASSWORD_INPUT = 'input[placeholder="Enter Password"]'
LOGIN_SUBMIT_BUTTON = 'button:has-text("Sign In")'
LOGIN_INVALID_PASSWORD = 'small.form-text.text-danger[data-test="invalid-password"]'
APP_NAVIGATION = '[data-test="app-navigation"]'

ENTITY_HEADER_ID = '[data-test="header"] span'

CONFLICT_SAVE_ANYWAY = 'button[data-test="save_anyway"]'
API_ERROR_NOTIFICATION = 'div.notif.notif--error[data-test="apiErrorNotification"]'
API_ERROR_DETAILS_BUTTON = "button.notif__details-btn"
API_ERROR_LOG = "textarea.notif__logs"
SAVE_SUCCESS_NOTIFICATION = "div.notif.notif--success"

SPLIT_OWNERSHIP_YES = '#field-splitOwnership button[data-test="YesBtn"]'
DEPARTMENT_OWNERSHIP_YES = '#field-departmentOwnership button[data-test="YesBtn"]'
DEPARTMENTS_FIELD = "#field-departments"
DEPARTMENT_TAGS = "#field-departments .multiselect__tags .multiselect__tag"
OWNERSHIP_PERCENT_INPUT = '#field-departmentOwnership input[type="number"]'
SPECIALIZATIONS_FIELD = "#field-specializations"
NO_SPECIALIZATIONS = '#field-specializations :text("No Program Specializations")'
NEW_SPECIALIZATION_BUTTON = '#field-specializations button:has-text("NEW SPECIALIZATION")'

BANNER_INSTRUCTIONAL_METHODS = (
    '[data-test="Schedule-Type"] [id^="field-instructionalMethods."][id$=".id"]'
)
BANNER_DELETE_LAST_METHOD = '[data-test="Schedule-Type"] button.btn.btn-danger >> nth=-1'

REGION_SELECTORS = {
    "meeting-patterns": '[data-card-id="times"]',
    "instructors": '[data-card-id="professors"]',
    "relationships": '[data-test="RelationshipsTable"]',
    "ownership": "#field-departmentOwnership",
    "specializations": "#field-specializations",
}


@dataclass(frozen=True)
class EntitySurface:  # pylint: disable=too-many-instance-attributes
    """Selectors used to reach, open, create, and save one entity kind."""

    list_ready: str
    open_existing: tuple[str, ...]
    edit_button: str | None
    create_button: str
    create_form_select: str | None
    create_pick_first: str | None
    create_submit: str
    editor_ready: str
    save_button: str


SURFACES = {
    EntityKind.SECTION: EntitySurface(
        list_ready='[data-test="add-section-btn"]',
        open_existing=(
            '[aria-label="This section has no conflicts."]',
            '[aria-label="This section has conflicts."]',
        ),
        edit_button=None,
        create_button='button[data-test="add-section-btn"]',
        create_form_select=None,
        create_pick_first=(
            'div.modal-dialog div[data-test="async-course-select"]'
            " .multiselect__content-wrapper li >> nth=0"
        ),
        create_submit='button[data-test="add-section-button"]',
        editor_ready='button[data-test="save-section-btn"]',
        save_button='button[data-test="save-section-btn"]',
    ),
    EntityKind.RELATIONSHIP: EntitySurface(
        list_ready='[data-test="RelationshipsTable"]',
        open_existing=('[data-test="RelationshipsTable"] tbody tr[tabindex="0"] >> nth=0',),
        edit_button=None,
        create_button='button:has-text("New Relationship")',
        create_form_select=None,
        create_pick_first=None,
        create_submit='.modal-dialog button:has-text("Create")',
        editor_ready='.modal-dialog :text("Edit Relationship")',
        save_button='.modal-dialog button:has-text("Save")',
    ),
    EntityKind.COURSE: EntitySurface(
        list_ready='[data-test="coursesTable"] tbody tr',
        open_existing=('[data-test="coursesTable"] tbody tr >> nth=0',),
        edit_button='[data-test="edit-course-btn"]',
        create_button='[data-test="proposeNewCourseBtn"]',
        create_form_select=".modal-dialog .multiselect",
        create_pick_first=None,
        create_submit='.modal-dialog button:has-text("Create")',
        editor_ready='[data-test="course-form-wrapper"]',
        save_button='[data-test="save-course-btn"]',
    ),
    EntityKind.PROGRAM: EntitySurface(
        list_ready="div.common-configurable-table table tbody tr",
        open_existing=("div.common-configurable-table table tbody tr >> nth=0",),
        edit_button='[data-test="edit-program-btn"]',
        create_button='[data-test="proposeNewProgramBtn"]',
        create_form_select='[data-test="newProgramFormSelect"]',
        create_pick_first=None,
        create_submit='[data-test="submitNewProgramBtn"]',
        editor_ready='[data-test="page-editor"]',
        save_button='[data-test="save-btn"]',
    ),
}

RELATIONSHIPS_NAV_LINK = 'li[data-test="routeToRelationships"]'


def field_container(qid: str) -> str:
    return f"#field-{_escape(qid)}"


def field_input(qid: str) -> str:
    escaped = _escape(qid)
    return f"#field-{escaped} input, #field-{escaped} textarea"


def field_yes_button(qid: str) -> str:
    return f'#field-{_escape(qid)} button[data-test="YesBtn"]'


def field_no_button(qid: str) -> str:
    return f'#field-{_escape(qid)} button[data-test="NoBtn"]'


def _escape(qid: str) -> str:
    return qid.replace(".", "\\.")
