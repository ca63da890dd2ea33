"""Reconcile passes driven end to end against the in-memory object store."""

import pytest
from doodba.reconcile.context import Context
from doodba.reconcile.directive import Directive, DirectiveKind
from doodba.reconcile.dispatcher import reconcile
from doodba.store import (
    CONFIG_MAP,
    DEPLOYMENT,
    DOODBA,
    INGRESS,
    JOB,
    PERSISTENT_VOLUME_CLAIM,
    SERVICE,
)
from doodba.utils.errors import ObjectStoreError, ResourceNotRegisteredError
from fakes import IMAGE, doodba_body

FINALIZER = Context.FINALIZER
CREATE_JOB = "odoo-before-create"
UPDATE_JOB = "odoo-before-update"


async def create(store, **overrides):
    return await store.create(DOODBA, "default", doodba_body(**overrides))


def status_of(store):
    return store.peek(DOODBA, "default", "odoo").get("status")


async def reach_running(store, ref, ctx):
    """Drive a fresh Doodba through its before-create hook into Running."""
    await create(store)
    await reconcile(ref, ctx)
    store.set_job_condition("default", CREATE_JOB, "Complete")
    await reconcile(ref, ctx)
    directive = await reconcile(ref, ctx)
    assert directive.kind == DirectiveKind.AWAIT_CHANGE
    assert status_of(store)["phase"] == "Running"


class TestCreation:
    @pytest.mark.asyncio
    async def test_first_pass_adds_finalizer_and_creates_job(self, store, ref, ctx):
        await create(store)
        directive = await reconcile(ref, ctx)

        doodba = store.peek(DOODBA, "default", "odoo")
        assert doodba["metadata"]["finalizers"] == [FINALIZER]
        assert store.names(JOB) == [CREATE_JOB]
        assert doodba["status"] == {
            "phase": "Creating",
            "ready": False,
            "beforeCreateJob": CREATE_JOB,
            "lastAppliedImage": f"{IMAGE}:16.0",
            "observedGeneration": 1,
        }
        assert directive == Directive.requeue(5)

    @pytest.mark.asyncio
    async def test_default_status_is_written_before_the_job(self, store, ref, ctx):
        await create(store)
        await reconcile(ref, ctx)

        writes = [
            call[:2]
            for call in store.calls
            if call[:2] in {("apply_status_patch", "Doodba"), ("create", "Job")}
        ]
        assert writes == [
            ("apply_status_patch", "Doodba"),
            ("create", "Job"),
            ("apply_status_patch", "Doodba"),
        ]

    @pytest.mark.asyncio
    async def test_job_carries_owner_and_image(self, store, ref, ctx):
        await create(store)
        await reconcile(ref, ctx)

        job = store.peek(JOB, "default", CREATE_JOB)
        owner = job["metadata"]["ownerReferences"][0]
        assert owner["kind"] == "Doodba"
        assert owner["name"] == "odoo"
        assert owner["controller"] is True
        assert job["metadata"]["annotations"]["doodba.glo.systems/image"] == f"{IMAGE}:16.0"
        container = job["spec"]["template"]["spec"]["containers"][0]
        assert container["args"] == ["bash", "-c", "click-odoo-initdb"]

    @pytest.mark.asyncio
    async def test_running_job_is_not_duplicated(self, store, ref, ctx, sensor):
        await create(store)
        await reconcile(ref, ctx)
        directive = await reconcile(ref, ctx)

        assert store.names(JOB) == [CREATE_JOB]
        assert len(store.calls_of("create", JOB)) == 1
        assert len(sensor.of("job_created")) == 1
        assert directive == Directive.requeue(5)

    @pytest.mark.asyncio
    async def test_completed_job_leads_to_running_and_children(self, store, ref, ctx):
        await reach_running(store, ref, ctx)

        status = status_of(store)
        assert status["ready"] is True
        assert "beforeCreateJob" not in status
        assert store.names(CONFIG_MAP) == ["odoo-config"]
        assert store.names(PERSISTENT_VOLUME_CLAIM) == ["odoo-filestore"]
        assert store.names(DEPLOYMENT) == ["odoo-queue", "odoo-web"]
        assert store.names(SERVICE) == ["odoo-web"]
        assert store.names(INGRESS) == ["odoo-web"]
        web = store.peek(DEPLOYMENT, "default", "odoo-web")
        assert web["spec"]["replicas"] == 2

    @pytest.mark.asyncio
    async def test_without_before_create_goes_running(self, store, ref, ctx):
        await create(store, beforeCreate=None)
        await reconcile(ref, ctx)

        assert status_of(store)["phase"] == "Running"
        assert store.names(JOB) == []

    @pytest.mark.asyncio
    async def test_phase_transitions_reported(self, store, ref, ctx, sensor):
        await create(store)
        await reconcile(ref, ctx)

        assert [e[2:] for e in sensor.of("phase")] == [
            (None, "Pending"),
            ("Pending", "Creating"),
        ]


class TestFailure:
    @pytest.mark.asyncio
    async def test_failed_job_marks_failed_and_waits(self, store, ref, ctx):
        await create(store)
        await reconcile(ref, ctx)
        store.set_job_condition("default", CREATE_JOB, "Failed")

        directive = await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Failed"
        assert directive.kind == DirectiveKind.AWAIT_CHANGE

        patches = len(store.calls_of("apply_status_patch"))
        directive = await reconcile(ref, ctx)
        assert directive.kind == DirectiveKind.AWAIT_CHANGE
        assert len(store.calls_of("apply_status_patch")) == patches
        assert store.names(JOB) == [CREATE_JOB]

    @pytest.mark.asyncio
    async def test_spec_edit_recreates_failed_job(self, store, ref, ctx, sensor):
        await create(store)
        await reconcile(ref, ctx)
        store.set_job_condition("default", CREATE_JOB, "Failed")
        await reconcile(ref, ctx)

        store.edit_spec("default", "odoo", beforeCreate="click-odoo-initdb --demo")
        await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Pending"
        assert store.names(JOB) == []
        assert len(sensor.of("job_deleted")) == 1

        await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Creating"
        job = store.peek(JOB, "default", CREATE_JOB)
        container = job["spec"]["template"]["spec"]["containers"][0]
        assert container["args"][-1] == "click-odoo-initdb --demo"


class TestUpgrade:
    @pytest.mark.asyncio
    async def test_image_change_runs_before_update(self, store, ref, ctx):
        await reach_running(store, ref, ctx)

        store.edit_spec("default", "odoo", tag="17.0")
        await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Upgrading"
        assert status_of(store)["ready"] is False

        # web still runs its two replicas
        await reconcile(ref, ctx)
        web = store.peek(DEPLOYMENT, "default", "odoo-web")
        assert web["spec"]["replicas"] == 1
        assert store.names(JOB) == [CREATE_JOB]

        await reconcile(ref, ctx)
        assert UPDATE_JOB in store.names(JOB)
        assert status_of(store)["beforeUpdateJob"] == UPDATE_JOB

        store.set_job_condition("default", UPDATE_JOB, "Complete")
        await reconcile(ref, ctx)
        status = status_of(store)
        assert status["phase"] == "Running"
        assert status["lastAppliedImage"] == f"{IMAGE}:17.0"

        directive = await reconcile(ref, ctx)
        assert directive.kind == DirectiveKind.AWAIT_CHANGE
        web = store.peek(DEPLOYMENT, "default", "odoo-web")
        assert web["spec"]["replicas"] == 2
        container = web["spec"]["template"]["spec"]["containers"][0]
        assert container["image"] == f"{IMAGE}:17.0"

    @pytest.mark.asyncio
    async def test_failed_update_job(self, store, ref, ctx):
        await reach_running(store, ref, ctx)
        store.edit_spec("default", "odoo", tag="17.0")
        for _ in range(3):
            await reconcile(ref, ctx)
        store.set_job_condition("default", UPDATE_JOB, "Failed")

        directive = await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Failed"
        assert directive.kind == DirectiveKind.AWAIT_CHANGE


class TestSuspend:
    @pytest.mark.asyncio
    async def test_suspend_overrides_creating(self, store, ref, ctx):
        await create(store)
        await reconcile(ref, ctx)

        store.edit_spec("default", "odoo", suspend=True)
        directive = await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Suspended"
        assert status_of(store)["ready"] is False
        assert directive.kind == DirectiveKind.AWAIT_CHANGE

    @pytest.mark.asyncio
    async def test_resume_does_not_rerun_completed_job(self, store, ref, ctx, sensor):
        await create(store)
        await reconcile(ref, ctx)
        store.edit_spec("default", "odoo", suspend=True)
        await reconcile(ref, ctx)
        store.set_job_condition("default", CREATE_JOB, "Complete")

        store.edit_spec("default", "odoo", suspend=False)
        await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Pending"
        await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Running"
        assert len(sensor.of("job_created")) == 1

    @pytest.mark.asyncio
    async def test_image_edited_while_suspended_upgrades_on_resume(self, store, ref, ctx):
        await create(store, beforeCreate=None)
        await reconcile(ref, ctx)
        await reconcile(ref, ctx)
        store.edit_spec("default", "odoo", suspend=True)
        await reconcile(ref, ctx)

        store.edit_spec("default", "odoo", suspend=False, tag="17.0")
        phases = []
        for _ in range(3):
            await reconcile(ref, ctx)
            phases.append(status_of(store)["phase"])
        assert phases == ["Pending", "Running", "Upgrading"]
        assert status_of(store)["lastAppliedImage"] == f"{IMAGE}:16.0"

        await reconcile(ref, ctx)
        await reconcile(ref, ctx)
        assert store.names(JOB) == [UPDATE_JOB]


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_steady_state_pass_changes_nothing(self, store, ref, ctx):
        await reach_running(store, ref, ctx)
        before = store.snapshot()
        patches = len(store.calls_of("apply_status_patch"))

        directive = await reconcile(ref, ctx)

        assert directive.kind == DirectiveKind.AWAIT_CHANGE
        assert store.snapshot() == before
        assert len(store.calls_of("apply_status_patch")) == patches

    @pytest.mark.asyncio
    async def test_deleted_child_is_restored(self, store, ref, ctx):
        await reach_running(store, ref, ctx)
        await store.delete(SERVICE, "default", "odoo-web")

        await reconcile(ref, ctx)
        assert store.names(SERVICE) == ["odoo-web"]


class TestDeletion:
    @pytest.mark.asyncio
    async def test_finalizer_holds_object_until_cleanup(self, store, ref, ctx, sensor):
        await reach_running(store, ref, ctx)
        await store.delete(DOODBA, "default", "odoo")
        assert store.peek(DOODBA, "default", "odoo") is not None
        assert sensor.of("cleanup") == []

        directive = await reconcile(ref, ctx)
        assert directive.kind == DirectiveKind.AWAIT_CHANGE
        assert sensor.of("cleanup") == [("cleanup", "odoo")]
        assert store.peek(DOODBA, "default", "odoo") is None

    @pytest.mark.asyncio
    async def test_reconcile_after_removal_is_noop(self, store, ref, ctx, sensor):
        await reach_running(store, ref, ctx)
        await store.delete(DOODBA, "default", "odoo")
        await reconcile(ref, ctx)

        directive = await reconcile(ref, ctx)
        assert directive.kind == DirectiveKind.AWAIT_CHANGE
        assert len(sensor.of("cleanup")) == 1

    @pytest.mark.asyncio
    async def test_foreign_finalizer_is_preserved(self, store, ref, ctx):
        await create(store)
        await reconcile(ref, ctx)
        await store.json_patch(
            DOODBA,
            "default",
            "odoo",
            [{"op": "add", "path": "/metadata/finalizers/-", "value": "other/keep"}],
        )
        await store.delete(DOODBA, "default", "odoo")

        await reconcile(ref, ctx)
        doodba = store.peek(DOODBA, "default", "odoo")
        assert doodba["metadata"]["finalizers"] == ["other/keep"]

    @pytest.mark.asyncio
    async def test_invalid_spec_still_cleans_up(self, store, ref, ctx, sensor):
        await create(store, beforeCreate=None)
        await reconcile(ref, ctx)
        store.objects[(DOODBA, "default", "odoo")]["spec"]["instances"] = "broken"
        await store.delete(DOODBA, "default", "odoo")

        await reconcile(ref, ctx)
        assert store.peek(DOODBA, "default", "odoo") is None
        assert len(sensor.of("cleanup")) == 1


class TestErrors:
    @pytest.mark.asyncio
    async def test_missing_object_is_noop(self, store, ref, ctx):
        directive = await reconcile(ref, ctx)
        assert directive.kind == DirectiveKind.AWAIT_CHANGE

    @pytest.mark.asyncio
    async def test_unregistered_kind_aborts(self, store, ref, ctx, sensor):
        store.registered = False
        directive = await reconcile(ref, ctx)
        assert directive.is_abort
        assert sensor.of("reconcile")[0][2] is False

    @pytest.mark.asyncio
    async def test_store_error_requeues_with_error_backoff(self, store, ref, ctx):
        await create(store, beforeCreate=None)
        await reconcile(ref, ctx)
        store.fail("apply_patch", CONFIG_MAP)

        directive = await reconcile(ref, ctx)
        assert directive == Directive.requeue(300)

    @pytest.mark.asyncio
    async def test_failed_action_stops_the_pass(self, store, ref, ctx):
        await create(store)
        store.fail("create", JOB, ObjectStoreError("quota exceeded", status=403))

        directive = await reconcile(ref, ctx)
        assert directive == Directive.requeue(300)
        # default status only; the Creating transition was never written
        assert status_of(store)["phase"] == "Pending"

        del store.failures[("create", JOB)]
        await reconcile(ref, ctx)
        assert status_of(store)["phase"] == "Creating"
        assert store.names(JOB) == [CREATE_JOB]

    @pytest.mark.asyncio
    async def test_invalid_spec_requeues(self, store, ref, ctx):
        await create(store, instances=[{"name": "web"}, {"name": "web"}])
        directive = await reconcile(ref, ctx)
        assert directive == Directive.requeue(300)

    @pytest.mark.asyncio
    async def test_unregistered_child_kind_requeues(self, store, ref, ctx):
        await create(store, beforeCreate=None)
        await reconcile(ref, ctx)
        store.fail(
            "apply_patch",
            INGRESS,
            ResourceNotRegisteredError("the server could not find the requested resource"),
        )

        directives = [await reconcile(ref, ctx) for _ in range(3)]
        assert directives == [Directive.requeue(300)] * 3

    @pytest.mark.asyncio
    async def test_unregistered_job_kind_requeues(self, store, ref, ctx):
        await create(store)
        store.fail(
            "create",
            JOB,
            ResourceNotRegisteredError("page not found", kind=JOB.kind),
        )
        directive = await reconcile(ref, ctx)
        assert directive == Directive.requeue(300)
