from contrast_scan.site_rules import DEFAULT_RULES, SiteRule, SiteRules


def test_default_rules_are_ordered():
    assert SiteRules().names() == [r.name for r in DEFAULT_RULES]


def test_appended_rule_extends_selectors_without_duplicates():
    rules = SiteRules().add(
        SiteRule(name="custom", selectors={"popups": ["#popup", ".promo-modal"]}, words={"close": ["schließen"]})
    )
    popups = rules.selector_list("popups")
    assert popups.count("#popup") == 1
    assert popups[-1] == ".promo-modal"
    assert rules.selector("popups").endswith(", .promo-modal")
    assert rules.word_list("close")[-1] == "schließen"


def test_payload_shape():
    rules = SiteRules([SiteRule(name="a", selectors={"logo": [".logo", "#brand"]}, words={"accept": ["ok"]})])
    payload = rules.to_payload()
    assert payload["logo"] == ".logo, #brand"
    assert payload["lists"] == {"logo": [".logo", "#brand"]}
    assert payload["words"] == {"accept": ["ok"]}


def test_empty_rule_list():
    payload = SiteRules([]).to_payload()
    assert payload == {"lists": {}, "words": {}}
