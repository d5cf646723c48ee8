from usau_registry.parsing.roster import is_valid_player_name, parse_team_roster

URL = "https://play.usaultimate.org/teams/events/Eventteam/?TeamId=42"

ROSTER_PAGE = """
<html><head><title>Carleton CUT | USA Ultimate</title></head><body>
<div class="profile_info"><h4>Carleton CUT Roster</h4></div>
<table class="global_table">
  <tr><th>No.</th><th>Player</th><th>Pronouns</th><th>Position</th><th>Year</th>
      <th>Height</th><th>Points</th><th>Assists</th><th>Ds</th><th>Turns</th></tr>
  <tr><td>7</td><td>Jane Doe</td><td>she/her</td><td>Handler</td><td>Senior</td>
      <td>5' 8"</td><td>12</td><td>30</td><td>4</td><td>6</td></tr>
  <tr><td>12</td><td>Sam Lee</td></tr>
  <tr><td>3</td><td>March Madness</td></tr>
  <tr><td>x</td><td>Not Numbered</td></tr>
</table>
<a href="/players/99">Alex Kim</a>
<a href="/players/7">jane doe</a>
</body></html>
"""


def test_team_name_from_profile_heading():
    assert parse_team_roster(ROSTER_PAGE, URL).name == "Carleton CUT"


def test_team_name_from_title_or_placeholder():
    html = "<html><head><title>Brown Brownian Motion | USA Ultimate</title></head></html>"
    assert parse_team_roster(html, URL).name == "Brown Brownian Motion"
    assert parse_team_roster("<title>USA Ultimate</title>", URL).name == "Unknown Team"


def test_roster_rows_and_player_links():
    roster = parse_team_roster(ROSTER_PAGE, URL)

    assert roster.link == URL
    assert [(p.name, p.number) for p in roster.roster] == [
        ("Jane Doe", 7),
        ("Sam Lee", 12),
        ("Alex Kim", None),
    ]


def test_full_row_fills_profile_and_stats():
    jane = parse_team_roster(ROSTER_PAGE, URL).roster[0]

    assert (jane.pronouns, jane.position, jane.year, jane.height) == (
        "she/her", "Handler", "Senior", "5' 8\"",
    )
    assert (jane.points, jane.assists, jane.ds, jane.turns) == (12, 30, 4, 6)


def test_roster_is_capped():
    rows = "".join(f"<tr><td>{i}</td><td>Runner {i:03d}</td></tr>" for i in range(60))
    html = f'<table class="global_table">{rows}</table>'
    assert len(parse_team_roster(html, URL).roster) == 50


def test_player_name_filter():
    assert is_valid_player_name("Jane Doe")
    assert is_valid_player_name("3 Dots")
    assert not is_valid_player_name("Jo")
    assert not is_valid_player_name("12/14")
    assert not is_valid_player_name("Club Mixed Division")
    assert not is_valid_player_name("2nd")


def test_non_ascii_jersey_number_is_not_a_player_row():
    html = '<table class="global_table"><tr><td>²</td><td>Jane Doe</td></tr><tr><td>4</td><td>Sam Lee</td></tr></table>'
    roster = parse_team_roster(html, URL).roster
    assert [(p.name, p.number) for p in roster] == [("Sam Lee", 4)]
