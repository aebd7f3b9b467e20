from scoreboard import db
from scoreboard.models import Score
from scoreboard.services.scores import seed_teams


def test_seed_teams_command_is_idempotent(flask_app, seeded):
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['seed-teams'])
    assert result.exit_code == 0
    assert 'Seeded 0 team(s).' in result.output
    assert Score.query.count() == len(seeded)


def test_seed_teams_inserts_missing_only(flask_app):
    assert seed_teams({'blue': 4}) == 1
    assert seed_teams(['blue', 'green']) == 1
    assert db.session.get(Score, 'blue').score == 4
    assert db.session.get(Score, 'green').score == 0
