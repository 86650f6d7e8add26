import unittest

from grocery_api.core.price_index import build_price_index
from grocery_api.core.ranking import partition_by_budget, rank_key
from grocery_api.core.recommender import generate_candidates, recommend
from grocery_api.schemas.recommendations import ListItem, PriceOffer

EPS = 1e-6


def offer(product, price, store, brand=None):
    return PriceOffer(product=product, brand=brand, price=price, unit="1u", store=store)


def items(*names):
    return [ListItem(name=n) for n in names]


# A catalog where singles, pairs and the cheapest plan all disagree.
CATALOG = [
    offer("milk", 1.10, "Mercadona"), offer("bread", 0.90, "Mercadona"), offer("eggs", 2.40, "Mercadona"),
    offer("milk", 0.95, "Dia"), offer("eggs", 1.99, "Dia"), offer("rice", 1.20, "Dia"),
    offer("bread", 0.70, "Lidl"), offer("rice", 0.99, "Lidl"), offer("coffee", 3.50, "Lidl"),
    offer("coffee", 2.99, "Carrefour", brand="Marcilla"), offer("coffee", 3.20, "Carrefour", brand="Saimaza"),
    offer("milk", 1.30, "Carrefour"), offer("rice", 1.10, "Carrefour"),
]
LIST = items("milk", "bread", "eggs", "rice", "coffee")


class TestScenarios(unittest.TestCase):
    def test_single_full_coverage_store(self):
        r = recommend(items("milk"), [offer("milk", 2, "A"), offer("milk", 3, "B")])
        self.assertEqual(r.recommendations[0].stores, ["A"])
        self.assertEqual(r.recommendations[0].total_price, 2)
        self.assertEqual(r.recommendations[0].missing_count, 0)
        cheapest = [o for o in r.recommendations if o.strategy == "cheapest"]
        self.assertEqual(len(cheapest), 1)
        self.assertEqual(cheapest[0].stores, ["A"])
        self.assertEqual(cheapest[0].total_price, 2)

    def test_two_store_combination_when_no_store_has_everything(self):
        r = recommend(items("milk", "bread"), [offer("milk", 2, "A"), offer("bread", 1, "B")])
        best = r.recommendations[0]
        self.assertEqual(best.strategy, "fewest-stores")
        self.assertEqual(best.stores, ["A", "B"])
        self.assertEqual(best.total_price, 3)
        self.assertEqual(best.missing_count, 0)
        self.assertTrue(best.is_combination)
        self.assertFalse(any(o.strategy == "single" and o.missing_count == 0 for o in r.recommendations))
        self.assertTrue(best.label)
        self.assertTrue(best.reasoning)

    def test_brand_mismatch(self):
        r = recommend([ListItem(name="milk", brand="X")], [offer("milk", 1, "A", brand="Y")])
        self.assertEqual([m.name for m in r.items_without_prices], ["milk"])
        self.assertEqual(r.items_without_prices[0].brand, "X")
        self.assertFalse(any(o.missing_count == 0 for o in r.recommendations))
        self.assertIn("No recommendations", r.summary)

    def test_budget_exclusion(self):
        r = recommend(items("milk", "bread"), [offer("milk", 20, "A"), offer("bread", 30, "A")], budget=30)
        self.assertEqual(r.recommendations, [])
        self.assertTrue(r.budget_exceeded)
        self.assertTrue(all(o.total_price == 50 for o in r.budget_exceeded))
        self.assertIn("budget", r.summary)
        self.assertIn("50.00", r.summary)
        self.assertIn("Exceeds your budget", r.budget_exceeded[0].reasoning)

    def test_empty_offers(self):
        r = recommend(LIST, [])
        self.assertEqual([m.name for m in r.items_without_prices], [i.name for i in LIST])
        self.assertEqual(r.recommendations, [])
        self.assertIsNone(r.budget_exceeded)

    def test_empty_list(self):
        r = recommend([], CATALOG)
        self.assertEqual(r.recommendations, [])
        self.assertEqual(r.all_prices, [])
        self.assertIn("empty", r.summary)


class TestBudget(unittest.TestCase):
    def test_budget_exceeded_absent_when_everything_fits(self):
        r = recommend(LIST, CATALOG, budget=1000)
        self.assertIsNone(r.budget_exceeded)
        self.assertIn("left", r.recommendations[0].reasoning)

    def test_budget_exceeded_absent_without_budget(self):
        r = recommend(LIST, CATALOG)
        self.assertIsNone(r.budget_exceeded)
        self.assertIsNone(r.budget)

    def test_recommendations_respect_budget(self):
        budget = 8.0
        r = recommend(LIST, CATALOG, budget=budget)
        for o in r.recommendations:
            self.assertLessEqual(o.total_price, budget)
        for o in r.budget_exceeded or []:
            self.assertGreater(o.total_price, budget)

    def test_summary_points_to_full_plan_over_budget(self):
        offers = [offer("milk", 5, "A"), offer("bread", 50, "B")]
        r = recommend(items("milk", "bread"), offers, budget=10)
        self.assertEqual([o.stores for o in r.recommendations], [["A"]])
        self.assertTrue(any(o.missing_count == 0 for o in r.budget_exceeded))
        self.assertNotIn("No option covers the whole list", r.summary)
        self.assertIn("within your budget", r.summary)
        self.assertIn("The whole list costs", r.summary)
        self.assertIn("55.00", r.summary)


class TestProperties(unittest.TestCase):
    def setUp(self):
        self.index = build_price_index(CATALOG)
        self.candidates = generate_candidates(self.index, LIST)

    def test_candidates_cover_every_strategy(self):
        self.assertEqual({o.strategy for o in self.candidates}, {"single", "cheapest", "fewest-stores"})

    def test_coverage_price_and_store_invariants(self):
        self.assertTrue(self.candidates)
        for o in self.candidates:
            self.assertEqual(len(o.items) + o.missing_count, len(LIST))
            self.assertAlmostEqual(o.total_price, sum(i.price for i in o.items), delta=EPS)
            names = [i.item for i in o.items]
            self.assertEqual(len(names), len(set(names)))
            self.assertEqual(o.store_count, len({i.store for i in o.items}))

    def test_recommendations_are_in_rank_order(self):
        r = recommend(LIST, CATALOG)
        keys = [rank_key(o) for o in r.recommendations]
        self.assertEqual(keys, sorted(keys))
        self.assertLessEqual(len(r.recommendations), 2)

    def test_budget_partition_is_exact(self):
        budget = 8.0
        p = partition_by_budget(self.candidates, budget)
        self.assertTrue(all(o.total_price <= budget for o in p.within))
        self.assertTrue(all(o.total_price > budget for o in p.exceeded))
        ids = {id(o) for o in p.within} | {id(o) for o in p.exceeded}
        self.assertEqual(ids, {id(o) for o in self.candidates})
        self.assertEqual(len(p.within) + len(p.exceeded), len(self.candidates))

    def test_idempotent(self):
        first = recommend(LIST, CATALOG, budget=8.0, all_stores=["Alcampo"])
        second = recommend(LIST, CATALOG, budget=8.0, all_stores=["Alcampo"])
        self.assertEqual(first.model_dump(), second.model_dump())

    def test_branded_item_only_uses_that_brand(self):
        shopping = [ListItem(name="coffee", brand="Saimaza")]
        r = recommend(shopping, CATALOG)
        for o in r.recommendations:
            for i in o.items:
                self.assertEqual(i.brand, "Saimaza")
                self.assertEqual(i.price, 3.20)

    def test_stores_considered_includes_informational_stores(self):
        r = recommend(LIST, CATALOG, all_stores=["Alcampo", "Dia"])
        self.assertEqual(r.stores_considered, ["Alcampo", "Carrefour", "Dia", "Lidl", "Mercadona"])


if __name__ == "__main__":
    unittest.main()
