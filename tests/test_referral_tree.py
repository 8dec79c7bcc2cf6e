from models import User
from ledger.referral_tree import ReferralTreeHelper


def test_chain_is_closest_first_and_capped(session, make_user):
    top = make_user("Top")
    mid = make_user("Mid", referrer=top)
    low = make_user("Low", referrer=mid)
    leaf = make_user("Leaf", referrer=low)

    tree = ReferralTreeHelper(session)

    assert [u.id for u in tree.chain_of(leaf.id, 4)] == [low.id, mid.id, top.id]
    assert [u.id for u in tree.chain_of(leaf.id, 2)] == [low.id, mid.id]
    assert tree.chain_of(top.id, 4) == []


def test_chain_stops_at_ancestor_without_wallet(session, make_user):
    top = make_user("Top")
    walletless = make_user("NoWallet", referrer=top, with_wallet=False)
    leaf = make_user("Leaf", referrer=walletless)

    assert ReferralTreeHelper(session).chain_of(leaf.id, 4) == []


def test_cyclic_data_is_bounded_by_depth(session, make_user):
    a = make_user("Ana")
    b = make_user("Bruno", referrer=a)
    a.referrer_id = b.id
    session.commit()

    chain = ReferralTreeHelper(session).chain_of(a.id, 4)

    assert [u.id for u in chain] == [b.id, a.id, b.id, a.id]


def test_career_points_go_to_four_ancestors(session, make_user):
    users = [make_user("Root")]
    for i in range(5):
        users.append(make_user(f"Gen{i}", referrer=users[-1]))
    newest = users[-1]

    awarded = ReferralTreeHelper(session).award_career_points(newest.id)
    session.commit()

    session.expire_all()
    points = {u.id: session.get(User, u.id).career_points for u in users}
    assert awarded == [users[4].id, users[3].id, users[2].id, users[1].id]
    assert points[users[0].id] == 0
    assert all(points[u.id] == 1 for u in users[1:5])


def test_generate_referral_code_uses_name_prefix(session):
    code = ReferralTreeHelper(session).generate_referral_code("Maria Silva")

    assert code.startswith("MARI")
    assert len(code) == 8
    assert code[4:].isdigit()


def test_generate_referral_code_without_letters(session):
    assert ReferralTreeHelper(session).generate_referral_code("123").startswith("USER")


def test_find_by_referral_code_is_case_insensitive(session, make_user):
    user = make_user("Zeca")

    assert ReferralTreeHelper(session).find_by_referral_code(user.referral_code.lower()).id == user.id
