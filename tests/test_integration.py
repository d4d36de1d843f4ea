"""Integration tests for end-to-end workflows."""

import datetime
import json
import logging
from unittest.mock import patch

import openpyxl
import pytest

from golfpoints.config import (
    clear_config_cache,
    get_config,
    get_current_season,
    get_default_points_config,
    get_events_counted,
)
from golfpoints.errors import (
    IncompleteManualPoints,
    InvalidRows,
    PersistenceFailure,
    UnresolvedTeamEntry,
)
from golfpoints.excel_parser import read_score_rows
from golfpoints.logging_config import DEBUG_CONSOLE_FORMAT, LOGGER_NAME, setup_logging
from golfpoints.models import ScoreType, ScoringMode
from golfpoints.schemas import PointsTable, Tournament
from golfpoints.service import ScoringService
from golfpoints.storage import JsonStorage, MemoryStorage
from season_scorer import load_rows, main, parse_teams


@pytest.fixture
def service():
    return ScoringService(MemoryStorage(), max_workers=2)


@pytest.fixture
def results_workbook(tmp_path):
    """Create an .xlsx upload like a club scoring system export."""
    path = tmp_path / 'spring_open.xlsx'
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = 'Results'
    ws.append(['Pos', 'Player Name', 'Course Handicap', 'Total'])
    ws.append(['1', 'Ann Smith', 4, 68])
    ws.append(['T2', 'Bo Lee', 6, 70])
    ws.append(['T2', 'Cy Young', '+1', 70])
    ws.append([None, None, None, None])
    ws.append(['4', 'Di Park', 12, 72])
    wb.save(path)
    return path


def make_tournament(**kwargs):
    defaults = {
        'id': 1,
        'name': 'Spring Open',
        'date': datetime.date(2025, 4, 12),
        'category': 'tour',
        'scoring_mode': ScoringMode.STROKE_NET,
    }
    defaults.update(kwargs)
    return Tournament(**defaults)


class TestExcelUpload:
    """Tests for reading results spreadsheets."""

    def test_read_rows(self, results_workbook):
        rows = read_score_rows(results_workbook)
        assert len(rows) == 4
        assert rows[0] == {'Pos': '1', 'Player Name': 'Ann Smith', 'Course Handicap': 4, 'Total': 68}

    def test_named_sheet(self, results_workbook):
        assert len(read_score_rows(results_workbook, sheet_name='Results')) == 4

    def test_upload_to_results(self, service, results_workbook):
        """Test spreadsheet -> committed results with a tie for second."""
        rows = read_score_rows(results_workbook)
        service.commit_tournament(make_tournament(), rows)

        results = service.storage.get_results(1)
        assert [r.display_position for r in results] == ['1', 'T2', 'T2', '4']
        assert [r.points for r in results] == [500, 300, 300, 135]
        cy = next(r for r in results if r.player_name == 'Cy Young')
        assert cy.gross_score == 71


class TestPreview:
    """Tests for previews, which never write to storage."""

    def test_preview_summary(self, service):
        service.storage.create_player('Ann Smith')
        rows = [
            {'Player': 'Ann Smith', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Bo Lee', 'Total': 70, 'Course Handicap': 6},
            {'Player': 'Cy Young', 'Total': 70, 'Course Handicap': 1},
        ]
        preview = service.preview_tournament(rows, 'StrokeNet', 'tour')

        summary = preview.summary
        assert summary.total_players == 3
        assert summary.new_players == 2
        assert summary.existing_players == 1
        assert summary.total_points == 1100
        assert summary.ties_detected
        assert preview.errors == []

    def test_preview_does_not_persist(self, service):
        rows = [{'Player': 'Bo Lee', 'Total': 70, 'Course Handicap': 6}]
        service.preview_tournament(rows, 'StrokeNet', 'tour')
        assert service.storage.list_tournaments() == []
        assert service.storage.find_player_by_name('Bo Lee') is None

    def test_preview_reports_row_errors(self, service):
        rows = [
            {'Player': 'Bo Lee', 'Total': 70, 'Course Handicap': 6},
            {'Player': 'No Handicap', 'Total': 71},
        ]
        preview = service.preview_tournament(rows, 'StrokeNet', 'tour')
        assert len(preview.results) == 1
        assert preview.summary.row_errors == 1

    def test_team_resolution_protocol(self, service):
        """Test a preview pauses on team entries until selections are given."""
        rows = [{'Player': 'Smith/Jones', 'Total': 70, 'Course Handicap': 5}]
        first = service.preview_tournament(rows, 'StrokeNet', 'tour')
        assert first.needs_team_resolution
        assert first.pending_teams[0].candidate_names == ('Smith', 'Jones')
        assert first.results == []

        second = service.preview_tournament(rows, 'StrokeNet', 'tour', resolution={'Smith/Jones': 'both'})
        assert not second.needs_team_resolution
        assert [r.player_name for r in second.results] == ['Smith', 'Jones']
        assert all(r.points == 500 for r in second.results)

    def test_separator_only_player_rejected(self, service):
        rows = [
            {'Player': ' / ', 'Total': 70, 'Course Handicap': 5},
            {'Player': 'Ann', 'Total': 71, 'Course Handicap': 5},
        ]
        with pytest.raises(UnresolvedTeamEntry):
            service.preview_tournament(rows, 'StrokeNet', 'tour')
        with pytest.raises(UnresolvedTeamEntry):
            service.commit_tournament(make_tournament(), rows, {'/': 'both'})
        assert service.storage.list_tournaments() == []

    def test_manual_preview_missing_points(self, service):
        rows = [{'Player': 'Ann', 'Position': 1}]
        preview = service.preview_tournament(rows, 'PreScored', 'league', is_manual=True)
        assert isinstance(preview.errors[0], IncompleteManualPoints)
        assert preview.results == []

    def test_outside_points_table_warning(self, service):
        service.storage.update_points_table('league', PointsTable.from_points([10]))
        rows = [
            {'Player': 'A', 'Total': 70, 'Course Handicap': 1},
            {'Player': 'B', 'Total': 71, 'Course Handicap': 1},
        ]
        preview = service.preview_tournament(rows, 'StrokeNet', 'league')
        assert preview.warnings == ['1 player(s) finished outside the points table and earn 0']


class TestCommit:
    """Tests for committing tournaments."""

    def test_row_errors_block_commit(self, service):
        rows = [
            {'Player': 'Bo Lee', 'Total': 70, 'Course Handicap': 6},
            {'Player': 'Bad', 'Total': 'x', 'Course Handicap': 1},
        ]
        with pytest.raises(InvalidRows) as exc_info:
            service.commit_tournament(make_tournament(), rows)
        assert len(exc_info.value.errors) == 1
        assert service.storage.list_tournaments() == []

    def test_manual_missing_points_leaves_nothing(self, service):
        """Test a manual tournament with a missing points value stores no rows."""
        rows = [
            {'Player': 'Ann', 'Position': 1, 'Points': 50},
            {'Player': 'Bo', 'Position': 2},
        ]
        tournament = make_tournament(is_manual=True, scoring_mode='PreScored', category='league')
        with pytest.raises(IncompleteManualPoints):
            service.commit_tournament(tournament, rows)
        assert service.storage.list_tournaments() == []
        assert service.storage.all_results() == []
        assert service.storage.list_players() == []

    def test_unresolved_team_blocks_commit(self, service):
        rows = [{'Player': 'Smith/Jones', 'Total': 70, 'Course Handicap': 5}]
        with pytest.raises(UnresolvedTeamEntry):
            service.commit_tournament(make_tournament(), rows)
        assert service.storage.list_tournaments() == []

    def test_commit_idempotent_on_id(self, service):
        rows = [
            {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Bo', 'Total': 70, 'Course Handicap': 6},
        ]
        service.commit_tournament(make_tournament(), rows)
        service.commit_tournament(make_tournament(), rows)
        assert len(service.storage.list_tournaments()) == 1
        assert len(service.storage.get_results(1)) == 2
        assert len(service.storage.list_players()) == 2

    def test_id_assigned(self, service):
        rows = [{'Player': 'Ann', 'Total': 68, 'Course Handicap': 4}]
        saved = service.commit_tournament(make_tournament(id=None), rows)
        assert saved.id == 1
        assert service.storage.get_results(1)[0].tournament_id == 1

    def test_failed_write_leaves_nothing(self, tmp_path):
        """Test a commit whose storage write fails stores no tournament, results or players."""
        service = ScoringService(JsonStorage(tmp_path / 'state.json'))
        rows = [
            {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Bo', 'Total': 70, 'Course Handicap': 6},
        ]
        with patch('golfpoints.storage.save_json', side_effect=OSError('disk full')):
            with pytest.raises(PersistenceFailure):
                service.commit_tournament(make_tournament(id=7), rows)

        assert service.storage.get_tournament(7) is None
        assert service.storage.get_results(7) == []
        assert service.storage.list_players() == []
        assert service.get_leaderboard() == []

        service.storage.create_player('Cy')
        reloaded = JsonStorage(tmp_path / 'state.json')
        assert reloaded.list_tournaments() == []
        assert [p.name for p in reloaded.list_players()] == ['Cy']

    def test_manual_flag_cannot_change(self, service):
        rows = [{'Player': 'Ann', 'Position': 1, 'Points': 50}]
        service.commit_tournament(make_tournament(is_manual=True, scoring_mode='PreScored'), rows)
        with pytest.raises(ValueError):
            service.commit_tournament(make_tournament(scoring_mode='PreScored'), rows)


class TestSeason:
    """Tests for season standings through the service."""

    def test_leaderboard_and_history(self, service):
        for tournament_id in range(1, 11):
            rows = [
                {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
                {'Player': 'Bo', 'Total': 70, 'Course Handicap': 6},
            ]
            service.commit_tournament(
                make_tournament(id=tournament_id, date=datetime.date(2025, 4, tournament_id)), rows
            )

        board = service.get_leaderboard(ScoreType.NET)
        assert [(e.player_name, e.overall_points) for e in board] == [('Ann', 4000), ('Bo', 2400)]
        assert board[0].events_played == 10

        ann = service.storage.find_player_by_name('Ann')
        history = service.get_player_history(ann.id)
        assert len(history) == 10
        assert sum(e.counted for e in history) == 8

    def test_points_update_triggers_recalculation(self, service):
        rows = [
            {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Bo', 'Total': 70, 'Course Handicap': 6},
        ]
        service.commit_tournament(make_tournament(), rows)

        run_id = service.update_points_table('tour', [200, 100])
        assert service.wait_for_recalculation(5)

        entry = service.get_recalculation_log(run_id)
        assert entry.status == 'Completed'
        assert entry.points_config_version == 2
        assert [e.overall_points for e in service.get_leaderboard()] == [200, 100]

    def test_delete_tournament_leaves_season(self, service):
        rows = [
            {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Bo', 'Total': 70, 'Course Handicap': 6},
        ]
        service.commit_tournament(make_tournament(id=1), rows)
        service.commit_tournament(make_tournament(id=2, name='Summer Open'), rows)

        deleted = service.delete_tournament(1)
        assert deleted.id == 1
        board = service.get_leaderboard()
        assert [(e.player_name, e.overall_points) for e in board] == [('Ann', 500), ('Bo', 300)]
        assert service.storage.get_leaderboard(ScoreType.NET) == board

    def test_delete_unknown_tournament(self, service):
        with pytest.raises(ValueError):
            service.delete_tournament(42)

    def test_points_update_recalculates_only_its_category(self, service):
        rows = [
            {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Bo', 'Total': 70, 'Course Handicap': 6},
        ]
        service.commit_tournament(make_tournament(id=1), rows)
        service.commit_tournament(make_tournament(id=2, category='major'), rows)

        run_id = service.update_points_table('tour', [200, 100])
        assert service.wait_for_recalculation(5)

        entry = service.get_recalculation_log(run_id)
        assert entry.category == 'tour'
        assert entry.tournaments_processed == 1
        assert [r.points for r in service.storage.get_results(1)] == [200, 100]
        assert service.storage.get_results(2)[0].points == 750

    def test_invalid_points_table_rejected(self, service):
        with pytest.raises(ValueError):
            service.update_points_table('tour', [100, 200], recalculate=False)
        assert service.storage.get_points_config().version == 1


class TestJsonStorage:
    """Tests for the JSON file backend."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / 'state.json'
        service = ScoringService(JsonStorage(path))
        rows = [
            {'Player': 'Ann', 'Total': 68, 'Course Handicap': 4},
            {'Player': 'Smith/Jones', 'Total': 70, 'Course Handicap': 5},
        ]
        service.commit_tournament(make_tournament(), rows, {'Smith/Jones': 'Jones'})
        service.recalculate()

        reloaded = ScoringService(JsonStorage(path))
        assert reloaded.get_leaderboard() == service.get_leaderboard()
        assert reloaded.storage.get_source(1).team_resolution == {'Smith/Jones': 'Jones'}
        assert len(reloaded.list_recalculation_logs()) == 1
        assert reloaded.recalculate().tournaments_processed == 1

        with open(path) as f:
            data = json.load(f)
        assert data['tournaments'][0]['name'] == 'Spring Open'

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / 'state.json'
        path.write_text('{not json')
        with pytest.raises(PersistenceFailure):
            JsonStorage(path)

    def test_write_failure_wrapped(self, tmp_path):
        storage = JsonStorage(tmp_path / 'state.json')
        with patch('golfpoints.storage.save_json', side_effect=OSError('disk full')):
            with pytest.raises(PersistenceFailure):
                storage.create_player('Ann')


class TestConfig:
    """Tests for season configuration loading."""

    def test_default_config(self):
        clear_config_cache()
        config = get_config()
        assert config.events_counted == 8
        assert get_events_counted() == 8
        assert set(config.points_tables) == {'major', 'tour', 'league', 'supr'}

    def test_default_points_config(self):
        points_config = get_default_points_config()
        assert points_config.version == 1
        assert points_config.table_for('tour').points_for(1) == 500
        assert points_config.table_for('major').points_for(1) == 750


class TestCli:
    """Tests for CLI helpers."""

    def test_parse_teams(self):
        assert parse_teams(['Smith/Jones=both', 'A/B = A']) == {'Smith/Jones': 'both', 'A/B': 'A'}
        assert parse_teams(None) == {}

    def test_parse_teams_invalid(self):
        with pytest.raises(ValueError):
            parse_teams(['Smith/Jones'])

    def test_load_json_rows(self, tmp_path):
        path = tmp_path / 'rows.json'
        path.write_text(json.dumps([{'Player': 'Ann', 'Total': 70}]))
        assert load_rows(path) == [{'Player': 'Ann', 'Total': 70}]

    def test_delete_command(self, tmp_path, capsys):
        state = tmp_path / 'state.json'
        JsonStorage(state).create_tournament(make_tournament())
        argv = ['season_scorer.py', '--state', str(state), 'delete', '1']
        with patch('sys.argv', argv), patch('season_scorer.setup_logging'):
            main()
        assert '✓ Deleted Spring Open (tournament 1)' in capsys.readouterr().out
        assert JsonStorage(state).list_tournaments() == []

    def test_delete_unknown_exits(self, tmp_path, capsys):
        argv = ['season_scorer.py', '--state', str(tmp_path / 'state.json'), 'delete', '5']
        with patch('sys.argv', argv), patch('season_scorer.setup_logging'):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        assert 'Tournament 5 not found' in capsys.readouterr().out


class TestLogging:
    """Tests for logging setup."""

    @pytest.fixture(autouse=True)
    def reset_handlers(self):
        yield
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_session_file_named_after_season(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, log_to_console=False)
        logging.getLogger('golfpoints.recalculation').info('Run abc started')
        for handler in logger.handlers:
            handler.flush()

        files = list(tmp_path.glob('season_*.log'))
        assert len(files) == 1
        assert files[0].name.startswith(f'season_{get_current_season()}_')
        assert 'golfpoints.recalculation [MainThread] Run abc started' in files[0].read_text()

    def test_repeat_setup_replaces_handlers(self):
        setup_logging(log_to_file=False)
        logger = setup_logging(level=logging.DEBUG, log_to_file=False)
        assert len(logger.handlers) == 1
        assert logger.handlers[0].formatter._fmt == DEBUG_CONSOLE_FORMAT
