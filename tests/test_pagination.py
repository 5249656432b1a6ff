import unittest

from gridcrud.schemas.query import Pagination, Range
from gridcrud.services.pagination import compute_page_info


class PageInfoTests(unittest.TestCase):
    def _flags(self, total, page, per_page):
        info = compute_page_info(total, Pagination(page=page, per_page=per_page))
        return info.has_next_page, info.has_previous_page

    def test_middle_page(self):
        self.assertEqual(self._flags(25, 2, 10), (True, True))

    def test_single_partial_page(self):
        self.assertEqual(self._flags(5, 1, 10), (False, False))

    def test_last_partial_page(self):
        self.assertEqual(self._flags(25, 3, 10), (False, True))

    def test_exact_multiple_boundary(self):
        self.assertEqual(self._flags(20, 2, 10), (False, True))
        self.assertEqual(self._flags(20, 1, 10), (True, False))
        self.assertEqual(self._flags(21, 2, 10), (True, True))

    def test_page_past_the_end(self):
        self.assertEqual(self._flags(5, 4, 10), (False, True))

    def test_empty_result(self):
        self.assertEqual(self._flags(0, 1, 10), (False, False))

    def test_next_page_false_whenever_window_covers_total(self):
        for total in range(0, 31):
            for page in range(1, 5):
                for per_page in (1, 3, 10):
                    has_next, has_prev = self._flags(total, page, per_page)
                    if page * per_page >= total:
                        self.assertFalse(has_next, (total, page, per_page))
                    if page == 1:
                        self.assertFalse(has_prev, (total, page, per_page))

    def test_disabled_pagination_reports_no_neighbours(self):
        self.assertEqual(self._flags(40, 0, 10), (False, False))
        self.assertEqual(self._flags(40, 2, 0), (False, False))

    def test_range_and_unpaginated_modes_have_no_page_info(self):
        self.assertIsNone(compute_page_info(25, Range(start=0, length=10)))
        self.assertIsNone(compute_page_info(25, None))

    def test_serialized_with_protocol_names(self):
        info = compute_page_info(25, Pagination(page=2, per_page=10))
        self.assertEqual(info.model_dump(by_alias=True), {"hasNextPage": True, "hasPreviousPage": True})


if __name__ == "__main__":
    unittest.main()
