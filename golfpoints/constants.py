"""Constants and header alias tables for golfpoints."""

# Tournament categories, each with its own points table
TOURNAMENT_TYPES = ('major', 'tour', 'league', 'supr')

# Number of best events counted towards a season total
DEFAULT_EVENTS_COUNTED = 8

DEFAULT_RECALCULATION_WORKERS = 4

TEAM_SEPARATOR = '/'

# Choice that credits every player named in a team entry
TEAM_CHOICE_BOTH = 'both'

# Header aliases, checked in order. Keys are compared trimmed and lower-cased.
PLAYER_ALIASES = ('player', 'player name', 'name', 'display name')
POSITION_ALIASES = ('position', 'pos', 'place', 'rank')
TOTAL_ALIASES = ('total', 'score', 'stableford points')
GROSS_ALIASES = ('gross score', 'gross')
NET_ALIASES = ('net score', 'net')
POINTS_ALIASES = ('points', 'pts')

# StrokeNet totals are net, so the course handicap is the one that rebuilds gross
HANDICAP_ALIASES = {
    'StrokeNet': ('course handicap', 'playing handicap', 'handicap', 'hcp'),
    'Stroke': ('playing handicap', 'course handicap', 'handicap', 'hcp'),
    'PreScored': ('playing handicap', 'course handicap', 'handicap', 'hcp'),
}

# Cell values treated as empty
BLANK_VALUES = ('', 'n/a', 'na', '-', 'dnf', 'none')

TIE_MARKER = 'T'
UNPLACED_MARKER = '-'

# Recalculation run states
STATE_IDLE = 'Idle'
STATE_RUNNING = 'Running'
STATE_COMPLETED = 'Completed'
STATE_FAILED = 'Failed'
