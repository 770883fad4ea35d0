"""Tests for SheetReviewer.core.review: the review session a viewer binds to.

Run:
    python -m unittest tests.test_review
"""
import json

from SheetReviewer.core.review import ReviewAPI
from SheetReviewer.core.session import EditState
from SheetReviewer.core.view import NO_ANSWER, FilterCriterion
from SheetReviewer.settings import lib
from SheetReviewer.status import status
from tests.base import EngineTestCase, FakeGateway, SignalRecorder, make_grid, mute_ui_signals

TRACK_COLUMN = 13


def applicants_grid():
    """Five applicants over fifteen columns; two picked the AI track."""
    headers = [f'Q{i}' for i in range(14)] + ['Comment']
    grid = [headers]
    for i, track in enumerate(('AI', 'Web', 'Data', 'AI', 'Web'), start=1):
        row = [f'applicant {i}'] + [''] * 14
        row[TRACK_COLUMN] = track
        grid.append(row)
    return grid


class ScenarioTest(EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.review = self.make_review(make_grid(['yes', 'no', 'old']))
        self.review.load()

    def test_unchanged_poll_while_editing(self):
        conflicts = SignalRecorder(self.review.conflictRaised)
        self.review.begin_edit()

        self.assertFalse(self.poll_grid(self.review, make_grid(['yes', 'no', 'old'])))

        self.assertTrue(self.review.editing)
        self.assertEqual(self.review.state, EditState.Editing)
        self.assertEqual(self.review.draft, 'old')
        self.assertIsNone(self.review.conflict)
        self.assertEqual(conflicts.count, 0)

        self.review.update_draft('still editing')
        self.assertEqual(self.review.draft, 'still editing')

    def test_remote_edit_while_editing(self):
        self.review.begin_edit()
        self.review.update_draft('my notes')

        self.poll_grid(self.review, make_grid(['yes', 'no', 'external-edit']))

        self.assertEqual(self.review.conflict.remote_value, 'external-edit')
        self.assertEqual(self.review.draft, 'my notes')
        self.assertTrue(self.review.editing)
        self.assertEqual(self.review.state, EditState.ConflictPending)

    def test_save_without_remote_change(self):
        saved = SignalRecorder(self.review.saved)
        self.review.begin_edit()
        self.review.update_draft('looks good')

        self.assertTrue(self.review.save())

        self.assertEqual(self.gateway.writes, [('sheet-id', 'Form Responses 1', 3, 1, 'looks good')])
        self.assertFalse(self.review.editing)
        self.assertEqual(self.review.state, EditState.Viewing)
        self.assertEqual(self.review.current_row.annotation, 'looks good')
        self.assertEqual(self.review.comment_text(), 'looks good')
        self.assertEqual(saved.count, 1)

        # the next poll sees our own write and reports no change
        self.assertFalse(self.review.poller.poll())

    def test_filter_to_absent_page(self):
        review = self.make_review(applicants_grid())
        review.load()
        review.set_filter(FilterCriterion(TRACK_COLUMN, 'AI'))

        self.assertEqual(review.total, 2)
        self.assertEqual(len(review.index.filtered_rows), 2)

        review.set_page(3)
        self.assertIsNone(review.current_row)
        self.assertIsNone(review.position)
        self.assertEqual(review.question_pairs(), [])


class ReviewAPITest(EngineTestCase):
    def test_requires_spreadsheet_and_worksheet(self):
        with mute_ui_signals():
            with self.assertRaises(status.SpreadsheetIdNotConfiguredError):
                ReviewAPI(FakeGateway(), '', 'Form Responses 1', threaded=False)
            with self.assertRaises(status.WorksheetNotConfiguredError):
                ReviewAPI(FakeGateway(), 'sheet-id', '', threaded=False)

    def test_load_empty_sheet(self):
        review = self.make_review([])
        self.assertIsNone(review.load())
        self.assertEqual(review.total, 0)
        self.assertEqual(review.headers, ())
        self.assertFalse(review.has_next)

    def test_load_failure(self):
        review = self.make_review(make_grid(['a', 'b', 'c']))
        self.gateway.fail_fetch = True
        with mute_ui_signals():
            with self.assertRaises(status.TransientFetchError):
                review.load()
        self.assertFalse(review.store.loaded)

    def test_pagination(self):
        review = self.make_review(applicants_grid())
        changes = SignalRecorder(review.rowChanged)
        review.load()

        self.assertEqual(review.page, 1)
        self.assertEqual(review.position, 1)
        self.assertEqual(review.total, 5)
        self.assertFalse(review.has_previous)
        self.assertTrue(review.has_next)
        self.assertFalse(review.previous_page())

        for expected in range(2, 6):
            self.assertTrue(review.next_page())
            self.assertEqual(review.current_row.row_index, expected)

        self.assertFalse(review.has_next)
        self.assertFalse(review.next_page())
        self.assertTrue(review.previous_page())
        self.assertEqual(review.page, 4)
        self.assertEqual(changes.last.row_index, 4)

    def test_set_filter_resets_page(self):
        review = self.make_review(applicants_grid())
        review.load()
        review.set_page(5)

        review.set_filter(FilterCriterion(TRACK_COLUMN, 'web'))

        self.assertEqual(review.page, 1)
        self.assertEqual(review.current_row.row_index, 2)
        self.assertEqual(review.criterion, FilterCriterion(TRACK_COLUMN, 'web'))

        review.set_filter(None)
        self.assertEqual(review.total, 5)

    def test_page_out_of_range_then_rows_arrive(self):
        review = self.make_review(make_grid(['a', 'b', 'c1']))
        review.load()
        review.set_page(2)
        self.assertIsNone(review.current_row)

        grid = make_grid(['a', 'b', 'c1'], ['d', 'e', 'c2'])
        self.assertTrue(self.poll_grid(review, grid))
        self.assertEqual(review.current_row.row_index, 2)

    def test_navigation_refused_while_editing(self):
        review = self.make_review(applicants_grid())
        review.load()
        review.begin_edit()
        with mute_ui_signals():
            with self.assertRaises(status.InvalidStateError):
                review.next_page()
            with self.assertRaises(status.InvalidStateError):
                review.set_filter(None)

    def test_begin_edit_without_row(self):
        review = self.make_review(make_grid())
        review.load()
        with mute_ui_signals():
            with self.assertRaises(status.InvalidStateError):
                review.begin_edit()

    def test_adopting_a_poll_conflict_shows_remote_row(self):
        review = self.make_review(make_grid(['yes', 'no', 'old']))
        review.load()
        drafts = SignalRecorder(review.draftChanged)
        review.begin_edit()
        review.update_draft('mine')
        self.poll_grid(review, make_grid(['yes', 'no', 'external-edit']))

        review.acknowledge_conflict(adopt=True)

        self.assertFalse(review.editing)
        self.assertEqual(review.current_row.annotation, 'external-edit')
        self.assertEqual(review.draft, 'external-edit')
        self.assertEqual(drafts.last, 'external-edit')
        # the adopted row is the new baseline
        self.assertFalse(review.poller.poll())

    def test_dismissing_a_poll_conflict(self):
        review = self.make_review(make_grid(['yes', 'no', 'old']))
        review.load()
        review.begin_edit()
        review.update_draft('mine')
        self.poll_grid(review, make_grid(['yes', 'no', 'external-edit']))

        review.acknowledge_conflict(adopt=False)

        self.assertEqual(review.state, EditState.Editing)
        self.assertEqual(review.draft, 'mine')
        self.assertFalse(review.poller.poll())

        self.assertTrue(review.save())
        self.assertEqual(self.gateway.grid[1][2], 'mine')

    def test_stray_cell_does_not_move_the_comment_column(self):
        review = self.make_review(make_grid(['a', 'x', 'old'], ['b', 'y', 'c2', 'stray']))
        review.load()

        self.assertEqual(review.headers, ('Q1', 'Q2', 'Comment'))
        self.assertEqual(review.comment_text(), 'old')

        review.begin_edit()
        review.update_draft('new')
        self.assertTrue(review.save())

        self.assertEqual(self.gateway.writes, [('sheet-id', 'Form Responses 1', 3, 1, 'new')])
        self.assertEqual(self.gateway.grid[2], ['b', 'y', 'c2', 'stray'])

    def test_row_deleted_while_editing(self):
        review = self.make_review(make_grid(['a', 'x', ''], ['b', 'y', '']))
        review.load()
        review.set_page(2)
        review.begin_edit()
        review.update_draft('my review of b')

        self.assertTrue(self.poll_grid(review, make_grid(['a', 'x', ''])))

        self.assertEqual(review.state, EditState.ConflictPending)
        self.assertTrue(review.conflict.removed)
        self.assertEqual(review.conflict.draft_value, 'my review of b')
        with mute_ui_signals():
            with self.assertRaises(status.InvalidStateError):
                review.save()

        # later polls keep the single notice
        conflicts = SignalRecorder(review.conflictRaised)
        self.assertTrue(review.poller.poll())
        self.assertEqual(conflicts.count, 0)

        review.acknowledge_conflict(adopt=False)

        self.assertFalse(review.editing)
        self.assertIsNone(review.current_row)
        self.assertEqual(self.gateway.writes, [])
        self.assertEqual(self.gateway.grid, make_grid(['a', 'x', '']))

    def test_smooth_update_emits_row_changed(self):
        review = self.make_review(make_grid(['yes', 'no', 'old']))
        review.load()
        changes = SignalRecorder(review.rowChanged)
        self.poll_grid(review, make_grid(['yes', 'no', 'new']))
        self.assertEqual(changes.count, 1)
        self.assertEqual(changes.last.annotation, 'new')
        self.assertEqual(review.draft, 'new')

    def test_derived_data(self):
        headers = ['Name', 'Why', 'S1', 'S2', 'S3', 'S4', 'Comment']
        grid = [headers, ['Ada', '', 'yes', 'no', 'Interested', '', '']]
        review = self.make_review(grid, section_columns=(2, 3, 4, 5))
        review.load()

        self.assertEqual(review.question_pairs()[:2], [('Name', 'Ada'), ('Why', NO_ANSWER)])
        self.assertEqual(review.section_ranks(), [(2, 1), (4, 3)])

    def test_polling_disabled(self):
        review = self.make_review(make_grid(['a', 'b', 'c']), polling_enabled=False)
        review.start()
        self.assertFalse(review.poller.is_active())

    def test_start_stop(self):
        review = self.make_review(make_grid(['a', 'b', 'c']))
        review.start()
        self.assertTrue(review.poller.is_active())
        review.stop()
        self.assertFalse(review.poller.is_active())


class FromSettingsTest(EngineTestCase):
    def _write_review_config(self, **sections):
        with lib.settings.review_template.open('r', encoding='utf-8') as f:
            data = json.load(f)
        for name, values in sections.items():
            data[name].update(values)
        with lib.settings.review_path.open('w', encoding='utf-8') as f:
            json.dump(data, f)
        lib.settings = lib.SettingsAPI()

    def test_missing_spreadsheet_id(self):
        with mute_ui_signals():
            with self.assertRaises(status.SpreadsheetIdNotConfiguredError):
                ReviewAPI.from_settings(gateway=FakeGateway(), threaded=False)

    def test_from_settings(self):
        self._write_review_config(
            spreadsheet={'id': 'abc123'},
            polling={'interval': 2.5, 'enabled': False},
            view={'filter_column': TRACK_COLUMN, 'filter_value': 'AI'},
        )
        review = ReviewAPI.from_settings(gateway=FakeGateway(applicants_grid()), threaded=False)
        self.addCleanup(review.stop)

        self.assertEqual(review.poller.table_id, 'abc123')
        self.assertEqual(review.poller.worksheet, 'Form Responses 1')
        self.assertAlmostEqual(review.poller.interval, 2.5)
        self.assertFalse(review.polling_enabled)
        self.assertEqual(review.criterion, FilterCriterion(TRACK_COLUMN, 'AI'))
        self.assertEqual(review.section_columns, (9, 10, 11, 12))

        review.load()
        self.assertEqual(review.total, 2)

    def test_no_filter_column(self):
        self._write_review_config(spreadsheet={'id': 'abc123'})
        review = ReviewAPI.from_settings(gateway=FakeGateway(), threaded=False)
        self.addCleanup(review.stop)
        self.assertIsNone(review.criterion)
