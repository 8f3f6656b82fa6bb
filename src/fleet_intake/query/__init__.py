from fleet_intake.query.work_orders import WorkOrderQuery

__all__ = ["WorkOrderQuery"]
