from schemas import Contact
from utils.contacts import merge_contacts


def contact(user_id, username):
    return Contact(id=user_id, username=username, email=f"{username.lower()}{user_id}@example.com")


def test_merge_deduplicates_and_excludes_requester():
    friends = [contact(2, "Bob"), contact(3, "Carol")]
    members = [contact(1, "Me"), contact(3, "Carol"), contact(4, "Dave")]

    merged = merge_contacts(1, friends, members)
    assert [c.id for c in merged] == [2, 3, 4]


def test_first_occurrence_wins():
    friends = [contact(2, "Bob")]
    members = [Contact(id=2, username="Bob", email="other@example.com")]

    merged = merge_contacts(1, friends, members)
    assert merged[0].email == friends[0].email


def test_sort_is_total_with_id_tiebreak():
    merged = merge_contacts(1, [contact(9, "Sam"), contact(5, "Sam")], [contact(7, "Alex")])
    assert [(c.username, c.id) for c in merged] == [("Alex", 7), ("Sam", 5), ("Sam", 9)]


def test_empty_inputs():
    assert merge_contacts(1, [], []) == []
