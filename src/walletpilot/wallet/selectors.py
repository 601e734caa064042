"""UI markers and recognizer chains for the MetaMask-style wallet extension.

Selectors target ``data-testid`` attributes first and fall back to
visible button text, which survives more releases but breaks with
locales.  Chains are ordered by priority.
"""

from __future__ import annotations

from walletpilot.browser.recognizers import Recognizer, quote_text, text_button


def _testid(value: str) -> str:
    return f'[data-testid="{value}"]'


# ---------------------------------------------------------------------------
# Screen markers
# ---------------------------------------------------------------------------

UNLOCK_PAGE = f'{_testid("unlock-page")}, .unlock-page'
ACCOUNT_MENU = _testid("account-menu-icon")
ONBOARDING_WELCOME = _testid("onboarding-welcome")

# Any of these means the extension UI has rendered.
READY_MARKERS = [_testid("unlock-page"), ACCOUNT_MENU, ".unlock-page", ONBOARDING_WELCOME]

# Bootstrap detection: first group = existing wallet, second = fresh install.
EXISTING_WALLET_MARKERS = [_testid("unlock-page"), ".unlock-page", 'input[type="password"]', ACCOUNT_MENU]
FRESH_INSTALL_MARKERS = [
    ONBOARDING_WELCOME,
    _testid("onboarding-terms-checkbox"),
    _testid("onboarding-import-wallet"),
]

MAIN_SCREEN_MARKERS = [ACCOUNT_MENU, _testid("eth-overview-send")]

# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------

ONBOARDING_TERMS_CHECKBOX = f'{_testid("onboarding-terms-checkbox")}, input[type="checkbox"]'
ONBOARDING_IMPORT_WALLET = _testid("onboarding-import-wallet")
ONBOARDING_ENTRY_MARKERS = [ONBOARDING_IMPORT_WALLET, _testid("onboarding-terms-checkbox")]

SRP_WORD_TEMPLATE = _testid("import-srp__srp-word-{index}")
SRP_FIRST_WORD = SRP_WORD_TEMPLATE.format(index=0)
SRP_CONFIRM = Recognizer("srp confirm", _testid("import-srp-confirm"))

METRICS_NO_THANKS = _testid("metametrics-no-thanks")
TERMS_AGREE = Recognizer("terms agree", _testid("onboarding-import-button"))
TERMS_AGREE_TEXT = text_button("I agree")

# Branch screen after "import existing wallet"; order matters.
BRANCH_MARKERS = [SRP_FIRST_WORD, METRICS_NO_THANKS, TERMS_AGREE.selector, TERMS_AGREE_TEXT.selector]

CREATE_PASSWORD_NEW = _testid("create-password-new")
CREATE_PASSWORD_CONFIRM = _testid("create-password-confirm")
CREATE_PASSWORD_TERMS = Recognizer("password terms", _testid("create-password-terms"))
CREATE_PASSWORD_SUBMIT = Recognizer("password submit", _testid("create-password-import"))

COMPLETE_DONE = Recognizer("onboarding done", _testid("onboarding-complete-done"))
PIN_NEXT = Recognizer("pin next", _testid("pin-extension-next"))
PIN_DONE = Recognizer("pin done", _testid("pin-extension-done"))
COMPLETION_MARKERS = [COMPLETE_DONE.selector, PIN_NEXT.selector, ACCOUNT_MENU]

GOT_IT = text_button("Got it")
POPOVER_CLOSE = Recognizer("popover close", _testid("popover-close"))
DISMISS = text_button("Dismiss")

# ---------------------------------------------------------------------------
# Unlock
# ---------------------------------------------------------------------------

UNLOCK_PASSWORD = (
    Recognizer("unlock password", _testid("unlock-password")),
    Recognizer("password field", "#password"),
)
UNLOCK_SUBMIT = (
    Recognizer("unlock submit", _testid("unlock-submit")),
    text_button("Unlock"),
)

# ---------------------------------------------------------------------------
# Confirmation popups
# ---------------------------------------------------------------------------

FOOTER_NEXT = Recognizer("footer next", _testid("page-container-footer-next"))
CONNECT_FIRST_STEP = (FOOTER_NEXT, text_button("Next"))
CONNECT_SECOND_STEP = (FOOTER_NEXT, text_button("Connect"))

SIGNATURE_SCROLL = Recognizer("signature scroll", _testid("signature-request-scroll-button"))
CONFIRM_FOOTER = Recognizer("confirm footer", _testid("confirm-footer-button"))
CANCEL_FOOTER = Recognizer("cancel footer", _testid("cancel-footer-button"))

SIGN_CONFIRM = (CONFIRM_FOOTER, text_button("Sign"), text_button("Confirm"))
SIGN_REJECT = (CANCEL_FOOTER, text_button("Reject"), text_button("Cancel"))
TX_CONFIRM = (CONFIRM_FOOTER, text_button("Confirm"))
TX_REJECT = (CANCEL_FOOTER, text_button("Reject"))

# ---------------------------------------------------------------------------
# Networks
# ---------------------------------------------------------------------------

ADD_NETWORK_ROUTE = "home.html#settings/networks/add-network"
NETWORK_FORM = ".networks-tab__add-network-form"
ADD_MANUALLY = text_button("Add a network manually")
NETWORK_FORM_ENTRY_MARKERS = [NETWORK_FORM, ADD_MANUALLY.selector]

NETWORK_NAME_INPUT = f"{NETWORK_FORM} .form-field:nth-child(1) input"
NETWORK_RPC_INPUT = f"{NETWORK_FORM} .form-field:nth-child(2) input"
NETWORK_CHAIN_ID_INPUT = f"{NETWORK_FORM} .form-field:nth-child(3) input"
NETWORK_SYMBOL_INPUT = f'{_testid("network-form-ticker")} input'
NETWORK_EXPLORER_INPUT = f"{NETWORK_FORM} .form-field:last-child input"
NETWORK_SAVE = f'{NETWORK_FORM}-footer button.btn-primary, button:has-text("Save")'
NETWORK_LOADING = ".spinner, .loading"
NETWORK_CHAIN_ID_ERROR = ".form-field:nth-child(3) .form-field__error"
NETWORKS_LIST = ".networks-tab__networks-list"

POST_SAVE_MARKERS = [DISMISS.selector, GOT_IT.selector, POPOVER_CLOSE.selector, NETWORKS_LIST]
POST_SAVE_DISMISS = (DISMISS, GOT_IT)

NETWORK_DISPLAY = Recognizer("network display", _testid("network-display"))


def network_entry_chain(network_name: str) -> tuple[Recognizer, ...]:
    """Entries in the network picker for *network_name*, exact button first."""
    item = text_button(network_name)
    container = Recognizer(
        f"network list item '{network_name}'",
        f'{_testid("network-list-item")}:has-text({quote_text(network_name)})',
    )
    return (item, container)


def srp_word(index: int) -> str:
    """Selector for the seed-phrase input at *index* (zero-based)."""
    return SRP_WORD_TEMPLATE.format(index=index)
