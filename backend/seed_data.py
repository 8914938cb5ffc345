"""Seed database with demo data."""
from carpet_erp.database import SessionLocal
from carpet_erp.repositories.audit_repo import session_audit_recorder
from carpet_erp.repositories.flow_store import SqlFlowStore
from carpet_erp.schemas import CompleteStep, ProductionStepCreate
from carpet_erp.use_cases.production_flow import (
    FlowUseCaseHooks,
    add_step_use_case,
    advance_flow_use_case,
    get_or_create_flow_use_case,
    update_step_use_case,
)

DEMO_UNITS = ("PRO-DEMO-001", "PRO-DEMO-002")


def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        store = SqlFlowStore(db)
        hooks = FlowUseCaseHooks(record_audit=session_audit_recorder(db))

        # Default machines are inserted on first list.
        machines = store.list_machines()

        # Untouched flow
        get_or_create_flow_use_case(store=store, production_product_id=DEMO_UNITS[0], user_name="Admin", hooks=hooks)

        # Flow with an extra needle-punching step, material selection done
        flow = get_or_create_flow_use_case(store=store, production_product_id=DEMO_UNITS[1], user_name="Admin", hooks=hooks)
        needle = next((m for m in machines if m.type == "needle-punching"), None)
        flow = add_step_use_case(
            store=store,
            flow_id=flow.id,
            data=ProductionStepCreate(
                name="Needle Punching",
                description="Punch fibers into the base fabric",
                machine_id=needle.id if needle else None,
            ),
            user_name="Admin",
            hooks=hooks,
        )
        flow = update_step_use_case(
            store=store,
            flow_id=flow.id,
            step_id=flow.steps[0].id,
            command=CompleteStep(inspector_name="Admin", quality_notes="Materials issued from store"),
            user_name="Admin",
            hooks=hooks,
        )
        advance_flow_use_case(store=store, flow_id=flow.id, user_name="Admin", hooks=hooks)

        print("✅ Database seeded successfully!")
        print(f"\nMachines: {len(machines)}")
        print(f"Demo production units: {', '.join(DEMO_UNITS)}")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
