from wfq_simulation.flow import Flow


class FinishTagCalculator:
    """WFQ finish-tag update rule.

    Must be applied once per packet, in arrival (trace) order: the tag is what an online
    scheduler would have computed when the packet arrived, not a function of the final schedule.
    There is no global virtual clock; a flow's virtual time restarts from the arrival time
    whenever the flow has caught up.
    """

    @staticmethod
    def apply(flow: Flow, arrival: int, length: int) -> float:
        start = max(flow.last_finish, float(arrival))
        finish = start + length / flow.weight
        flow.last_finish = finish
        return finish
