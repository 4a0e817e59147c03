from django.test import SimpleTestCase, override_settings

from seating.capacity import ensure_capacity, plan_capacity, representative_capacity, rooms_for
from seating.exceptions import InsufficientCapacity

from .helpers import make_layout


class CapacityPlanTests(SimpleTestCase):
    def test_sufficient_rooms(self):
        plan = plan_capacity(10, [make_layout('R1', 6), make_layout('R2', 6)])
        self.assertTrue(plan.sufficient)
        self.assertEqual(plan.total_seats, 12)
        self.assertEqual(plan.shortage, 0)
        self.assertEqual(plan.rooms_needed, 0)
        self.assertIs(ensure_capacity(plan), plan)

    def test_shortage_is_sized_in_rooms(self):
        plan = plan_capacity(10, [make_layout(benches=2, seats_per_bench=2)])
        self.assertFalse(plan.sufficient)
        self.assertEqual(plan.shortage, 6)
        # the first room (4 seats) stands for the rest
        self.assertEqual(plan.rooms_needed, 2)

        with self.assertRaises(InsufficientCapacity) as ctx:
            ensure_capacity(plan)
        self.assertEqual(ctx.exception.details['shortage'], 6)
        self.assertIn('Need 6 more seats', ctx.exception.message)

    def test_no_rooms_falls_back_to_default_capacity(self):
        plan = plan_capacity(45, [])
        self.assertEqual(plan.representative_capacity, 30)
        self.assertEqual(plan.rooms_needed, 2)

    @override_settings(SEAT_ALLOCATION={'REPRESENTATIVE_ROOM_CAPACITY': 50})
    def test_configured_representative_capacity_wins(self):
        self.assertEqual(representative_capacity([make_layout('R1', 6)]), 50)
        self.assertEqual(rooms_for(51, [make_layout('R1', 6)]), 2)

    def test_rooms_for_nothing_is_zero(self):
        self.assertEqual(rooms_for(0, []), 0)
