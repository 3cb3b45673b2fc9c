from student_system.api.pagination import MAX_PAGE_SIZE, Pagination, page_window


def test_page_window_clamps_inputs():
	assert page_window(1, 10) == (0, 10)
	assert page_window(3, 20) == (40, 20)
	assert page_window(0, 0) == (0, 1)
	assert page_window(2, 1000) == (MAX_PAGE_SIZE, MAX_PAGE_SIZE)


def test_pagination_metadata():
	middle = Pagination.build(page=2, limit=10, total=25)
	assert middle.total_pages == 3
	assert middle.has_next_page and middle.has_previous_page

	empty = Pagination.build(page=1, limit=10, total=0)
	assert empty.total_pages == 0
	assert not empty.has_next_page and not empty.has_previous_page
