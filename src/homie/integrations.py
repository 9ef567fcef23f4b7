"""Shell and tmux integration snippets printed by ``homie shell`` and ``homie tmux``."""

SHELL_CONFIG = r"""# homie: browse clipboard history with Ctrl-h and insert the pick at the cursor
_homie_history() {
    local selected
    selected="$(homie history --paste)" || return
    READLINE_LINE="${READLINE_LINE:0:$READLINE_POINT}${selected}${READLINE_LINE:$READLINE_POINT}"
    READLINE_POINT=$((READLINE_POINT + ${#selected}))
}
bind -x '"\C-h": _homie_history'
"""

TMUX_CONFIG = r"""# homie: prefix + h opens clipboard history in a popup and pastes into the current pane
bind-key h display-popup -E -w 80% -h 60% "HOMIE_TARGET_PANE='#{pane_id}' homie history --paste"
"""

SHELL_HELP = """To enable shell integration execute:
$ source <(homie shell | tee -a "$HOME/.bashrc")"""

TMUX_HELP = """To enable tmux integration append to your .tmux.conf:
$ homie tmux >> "$HOME/.tmux.conf"

Then reload from inside a running tmux session:
$ tmux source-file "$HOME/.tmux.conf"

Requires tmux 3.2+ (for display-popup)"""
